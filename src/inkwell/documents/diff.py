"""Line-level content diffs and id-based outline diffs between two snapshots."""

from __future__ import annotations

import difflib
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..utils.text import count_words, split_lines, truncate
from .models import OutlineSection, Stage

__all__ = [
    "DEFAULT_DIFF_CHAR_LIMIT",
    "ContentDiff",
    "OutlineDiff",
    "SectionChange",
    "StageChange",
    "diff_content",
    "diff_outline",
    "format_changes_for_prompt",
]

DEFAULT_DIFF_CHAR_LIMIT = 500
_TITLE_PREVIEW = 30


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@dataclass(slots=True, frozen=True)
class ContentDiff:
    has_changes: bool
    summary: str
    diff_text: str = ""
    added_lines: int = 0
    removed_lines: int = 0
    added_words: int = 0
    removed_words: int = 0


@dataclass(slots=True, frozen=True)
class SectionChange:
    """A section present on both sides whose fields differ."""

    section_id: str
    title: str
    changes: str


@dataclass(slots=True, frozen=True)
class OutlineDiff:
    has_changes: bool
    summary: str
    added_sections: tuple[str, ...] = ()
    removed_sections: tuple[str, ...] = ()
    modified_sections: tuple[SectionChange, ...] = field(default_factory=tuple)
    reordered_sections: tuple[str, ...] = ()

    @property
    def reordered(self) -> bool:
        return bool(self.reordered_sections)


@dataclass(slots=True, frozen=True)
class StageChange:
    previous: Stage
    current: Stage


# ----------------------------------------------------------------------
# Content
# ----------------------------------------------------------------------
def diff_content(previous: str, current: str, *, char_limit: int = DEFAULT_DIFF_CHAR_LIMIT) -> ContentDiff:
    """Compare two versions of the document text line by line."""

    if previous == current:
        return ContentDiff(has_changes=False, summary="No changes")

    previous_lines = split_lines(previous)
    current_lines = split_lines(current)
    added = 0
    removed = 0
    matcher = difflib.SequenceMatcher(a=previous_lines, b=current_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += sum(1 for line in previous_lines[i1:i2] if line.strip())
        if tag in ("replace", "insert"):
            added += sum(1 for line in current_lines[j1:j2] if line.strip())

    previous_words = count_words(previous)
    current_words = count_words(current)
    added_words = max(0, current_words - previous_words)
    removed_words = max(0, previous_words - current_words)

    parts: list[str] = []
    if added:
        parts.append("added " + _plural(added, "line", "lines"))
    if removed:
        parts.append("removed " + _plural(removed, "line", "lines"))
    if added_words and not added:
        parts.append("added " + _plural(added_words, "word", "words"))
    if removed_words and not removed:
        parts.append("removed " + _plural(removed_words, "word", "words"))
    if not parts:
        parts.append("content modified")

    return ContentDiff(
        has_changes=True,
        summary=", ".join(parts),
        diff_text=_render_unified(previous_lines, current_lines, char_limit),
        added_lines=added,
        removed_lines=removed,
        added_words=added_words,
        removed_words=removed_words,
    )


def _render_unified(previous_lines: Sequence[str], current_lines: Sequence[str], char_limit: int) -> str:
    diff = difflib.unified_diff(
        list(previous_lines),
        list(current_lines),
        fromfile="a/document",
        tofile="b/document",
        lineterm="",
        n=1,
    )
    # Headers carry no information for the model.
    body = [line for line in diff if not line.startswith(("---", "+++"))]
    text = "\n".join(body)
    if char_limit > 0 and len(text) > char_limit:
        text = truncate(text, char_limit)
    return text


# ----------------------------------------------------------------------
# Outline
# ----------------------------------------------------------------------
def diff_outline(
    previous: Sequence[OutlineSection] | None,
    current: Sequence[OutlineSection] | None,
) -> OutlineDiff:
    """Compare two outlines by section id, per-id fields and order."""

    if previous is None and current is None:
        return OutlineDiff(has_changes=False, summary="No outline")
    if previous is None:
        assert current is not None
        return OutlineDiff(
            has_changes=True,
            summary="Outline created with " + _plural(len(current), "section", "sections"),
            added_sections=tuple(section.title for section in current),
        )
    if current is None:
        return OutlineDiff(
            has_changes=True,
            summary="Outline removed",
            removed_sections=tuple(section.title for section in previous),
        )

    previous_by_id = {section.id: section for section in previous}
    current_ids = {section.id for section in current}

    removed = tuple(section.title for section in previous if section.id not in current_ids)
    added: list[str] = []
    modified: list[SectionChange] = []
    for section in current:
        before = previous_by_id.get(section.id)
        if before is None:
            added.append(section.title)
            continue
        changes = _describe_section_change(before, section)
        if changes:
            modified.append(SectionChange(section_id=section.id, title=section.title, changes=changes))

    # Only the relative order of sections present on both sides counts.
    previous_order = [section.id for section in previous if section.id in current_ids]
    shared = [section for section in current if section.id in previous_by_id]
    reordered = tuple(
        section.title for before_id, section in zip(previous_order, shared) if before_id != section.id
    )

    has_changes = bool(added or removed or modified or reordered)
    if not has_changes:
        return OutlineDiff(has_changes=False, summary="No changes")

    parts: list[str] = []
    if added:
        parts.append("added " + ", ".join(f'"{title}"' for title in added))
    if removed:
        parts.append("removed " + ", ".join(f'"{title}"' for title in removed))
    if modified:
        parts.append("modified " + ", ".join(f'"{item.title}"' for item in modified))
    if reordered:
        parts.append("reordered " + ", ".join(f'"{title}"' for title in reordered))

    return OutlineDiff(
        has_changes=True,
        summary="; ".join(parts),
        added_sections=tuple(added),
        removed_sections=removed,
        modified_sections=tuple(modified),
        reordered_sections=reordered,
    )


def _describe_section_change(before: OutlineSection, after: OutlineSection) -> str:
    changes: list[str] = []
    if before.title != after.title:
        changes.append(
            f'title changed from "{truncate(before.title, _TITLE_PREVIEW)}" '
            f'to "{truncate(after.title, _TITLE_PREVIEW)}"'
        )
    if before.description != after.description:
        changes.append("description updated")
    if before.estimated_words != after.estimated_words:
        old = before.estimated_words if before.estimated_words is not None else "none"
        new = after.estimated_words if after.estimated_words is not None else "none"
        changes.append(f"word estimate changed from {old} to {new}")
    return ", ".join(changes)


# ----------------------------------------------------------------------
# Prompt rendering
# ----------------------------------------------------------------------
def format_changes_for_prompt(
    content_diff: ContentDiff | None,
    outline_diff: OutlineDiff | None,
    stage_change: StageChange | None,
) -> str:
    """Render the manual changes as a markdown block; empty when nothing changed."""

    has_content = content_diff is not None and content_diff.has_changes
    has_outline = outline_diff is not None and outline_diff.has_changes
    if not (has_content or has_outline or stage_change is not None):
        return ""

    lines = ["## Recent User Changes", "", "The user has made the following manual changes since your last response:", ""]
    if stage_change is not None:
        lines.append("### Stage Change")
        lines.append(f"Document stage changed from **{stage_change.previous}** to **{stage_change.current}**.")
        lines.append("")
    if has_outline:
        assert outline_diff is not None
        lines.append("### Outline Changes")
        lines.append(f"**Summary:** {outline_diff.summary}")
        for item in outline_diff.modified_sections:
            lines.append(f"- **{item.title}:** {item.changes}")
        lines.append("")
    if has_content:
        assert content_diff is not None
        lines.append("### Content Changes")
        lines.append(f"**Summary:** {content_diff.summary}")
        if content_diff.diff_text:
            lines.extend(["", "```diff", content_diff.diff_text, "```"])
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
