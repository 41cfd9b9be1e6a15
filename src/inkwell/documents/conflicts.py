"""Detect drafted content that an outline change has left stranded.

Structural edits to the outline and free-text edits to the draft can drift
apart when made independently. The detector only reports the drift; it never
tries to reconcile it.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..utils.text import normalize_whitespace, split_lines, truncate_words
from .models import OutlineSection

__all__ = [
    "ConflictKind",
    "ConflictDetail",
    "ConflictReport",
    "detect_outline_draft_conflicts",
    "format_conflicts_for_prompt",
    "titles_match",
]

_HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.+?)\s*#*\s*$")
_PREVIEW_CHARS = 200
_MIN_FUZZY_TITLE = 4
_DESCRIPTION_DELTA_CHARS = 50
_DESCRIPTION_DELTA_RATIO = 0.2
_REORDER_DISTANCE = 2


class ConflictKind(str, Enum):
    DELETED = "deleted"
    RETITLED = "retitled"
    MODIFIED = "modified"
    REORDERED = "reordered"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class ConflictDetail:
    section_id: str
    old_title: str
    heading: str
    line: int
    kind: ConflictKind
    change: str
    preview: str = ""


@dataclass(slots=True, frozen=True)
class ConflictReport:
    has_conflicts: bool
    summary: str
    details: tuple[ConflictDetail, ...] = ()

    @classmethod
    def empty(cls, summary: str = "No conflicts detected.") -> "ConflictReport":
        return cls(has_conflicts=False, summary=summary)


@dataclass(slots=True, frozen=True)
class _Heading:
    text: str
    line: int
    body: str


# ----------------------------------------------------------------------
# Title matching
# ----------------------------------------------------------------------
def _normalize_title(title: str) -> str:
    return normalize_whitespace(title).lower()


def _levenshtein(left: str, right: str, limit: int) -> int:
    """Edit distance, short-circuiting to ``limit + 1`` once it is exceeded."""

    if abs(len(left) - len(right)) > limit:
        return limit + 1
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        if min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]


def titles_match(heading: str, title: str) -> bool:
    """Return ``True`` when ``heading`` plausibly names the outline ``title``."""

    left = _normalize_title(heading)
    right = _normalize_title(title)
    if not left or not right:
        return False
    if left == right:
        return True
    if len(right) < _MIN_FUZZY_TITLE:
        return False
    tolerance = max(1, len(right) // 8)
    return _levenshtein(left, right, tolerance) <= tolerance


# ----------------------------------------------------------------------
# Draft scanning
# ----------------------------------------------------------------------
def _extract_headings(draft: str) -> list[_Heading]:
    lines = split_lines(draft)
    positions: list[tuple[int, str]] = []
    in_fence = False
    for index, line in enumerate(lines):
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_RE.match(line)
        if match:
            positions.append((index, match.group(2).strip()))

    headings: list[_Heading] = []
    for order, (index, text) in enumerate(positions):
        stop = positions[order + 1][0] if order + 1 < len(positions) else len(lines)
        body = "\n".join(lines[index + 1 : stop]).strip()
        headings.append(_Heading(text=text, line=index + 1, body=body))
    return headings


def _find_heading(headings: Sequence[_Heading], title: str) -> _Heading | None:
    for heading in headings:
        if titles_match(heading.text, title):
            return heading
    return None


def _preview(body: str) -> str:
    return truncate_words(body.strip(), _PREVIEW_CHARS)


def _description_changed(before: str, after: str) -> bool:
    if _normalize_title(before) == _normalize_title(after):
        return False
    delta = abs(len(before) - len(after))
    longest = max(len(before), len(after), 1)
    return delta > _DESCRIPTION_DELTA_CHARS or delta / longest > _DESCRIPTION_DELTA_RATIO


# ----------------------------------------------------------------------
# Detection
# ----------------------------------------------------------------------
def detect_outline_draft_conflicts(
    previous_outline: Sequence[OutlineSection] | None,
    current_outline: Sequence[OutlineSection] | None,
    draft_content: str | None,
) -> ConflictReport:
    """Report drafted sections that reference outline entries which changed.

    A missing previous outline or blank draft yields no conflicts. A missing
    current outline is treated as an empty one, so every drafted section of
    the previous outline counts as deleted.
    """

    if previous_outline is None or not (draft_content or "").strip():
        return ConflictReport.empty("Nothing to check for conflicts.")
    current = tuple(current_outline or ())
    previous = tuple(previous_outline)
    if previous == current:
        return ConflictReport.empty()

    headings = _extract_headings(draft_content or "")
    if not headings:
        return ConflictReport.empty("No headings found in draft content.")

    current_by_id = {section.id: section for section in current}
    previous_order = {section.id: index for index, section in enumerate(previous)}
    current_order = {section.id: index for index, section in enumerate(current)}

    details: list[ConflictDetail] = []
    for section in previous:
        heading = _find_heading(headings, section.title)
        updated = current_by_id.get(section.id)

        if updated is None:
            if heading is not None:
                details.append(
                    ConflictDetail(
                        section_id=section.id,
                        old_title=section.title,
                        heading=heading.text,
                        line=heading.line,
                        kind=ConflictKind.DELETED,
                        change=f'Section "{section.title}" was removed from the outline',
                        preview=_preview(heading.body),
                    )
                )
            continue

        if _normalize_title(section.title) != _normalize_title(updated.title):
            # Draft already follows the new title.
            if heading is not None and not titles_match(heading.text, updated.title):
                details.append(
                    ConflictDetail(
                        section_id=section.id,
                        old_title=section.title,
                        heading=heading.text,
                        line=heading.line,
                        kind=ConflictKind.RETITLED,
                        change=f'Section retitled from "{section.title}" to "{updated.title}"',
                        preview=_preview(heading.body),
                    )
                )
            continue

        if heading is None:
            continue

        changes: list[str] = []
        if _description_changed(section.description, updated.description):
            changes.append("description significantly modified")
        if section.estimated_words != updated.estimated_words:
            old = section.estimated_words if section.estimated_words is not None else "unset"
            new = updated.estimated_words if updated.estimated_words is not None else "unset"
            changes.append(f"word count estimate changed from {old} to {new}")
        if changes:
            details.append(
                ConflictDetail(
                    section_id=section.id,
                    old_title=section.title,
                    heading=heading.text,
                    line=heading.line,
                    kind=ConflictKind.MODIFIED,
                    change="; ".join(changes),
                    preview=_preview(heading.body),
                )
            )

        before_index = previous_order[section.id]
        after_index = current_order[section.id]
        if abs(before_index - after_index) >= _REORDER_DISTANCE:
            details.append(
                ConflictDetail(
                    section_id=section.id,
                    old_title=section.title,
                    heading=heading.text,
                    line=heading.line,
                    kind=ConflictKind.REORDERED,
                    change=f"Section moved from position {before_index + 1} to position {after_index + 1}",
                    preview=_preview(heading.body),
                )
            )

    if not details:
        return ConflictReport.empty()
    return ConflictReport(has_conflicts=True, summary=_summarize(details), details=tuple(details))


def _summarize(details: Sequence[ConflictDetail]) -> str:
    counts: dict[ConflictKind, int] = {}
    for detail in details:
        counts[detail.kind] = counts.get(detail.kind, 0) + 1
    parts = [f"{counts[kind]} {kind.value}" for kind in ConflictKind if kind in counts]
    titles = ", ".join(f'"{detail.old_title}"' for detail in details)
    return (
        f"Found {len(details)} conflict(s): {', '.join(parts)} ({titles}). "
        "Draft content may need to be updated to match the new outline."
    )


_KIND_LABELS = {
    ConflictKind.DELETED: "Section Deleted",
    ConflictKind.RETITLED: "Section Retitled",
    ConflictKind.MODIFIED: "Section Modified",
    ConflictKind.REORDERED: "Section Reordered",
}


def format_conflicts_for_prompt(report: ConflictReport) -> str:
    """Render ``report`` as a markdown block; empty when there are no conflicts."""

    if not report.has_conflicts:
        return ""
    lines = [
        "## Outline-Draft Conflicts Detected",
        "",
        report.summary,
        "",
        "The following drafted sections may need reconciliation:",
        "",
    ]
    for detail in report.details:
        lines.append(f"### {detail.old_title}")
        lines.append(f"**Conflict Type:** {_KIND_LABELS[detail.kind]}")
        lines.append(f"**Draft heading:** \"{detail.heading}\" (line {detail.line})")
        lines.append(f"**Changes:** {detail.change}")
        if detail.preview:
            lines.extend(["**Affected Draft Content Preview:**", "```", detail.preview, "```"])
        lines.append("")
    lines.extend(
        [
            "Please help the user reconcile these conflicts. Do not silently rewrite or delete",
            "drafted content; ask or propose an edit suggestion instead.",
        ]
    )
    return "\n".join(lines)
