"""Offset-safe application of edit suggestions to document content."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from dataclasses import replace

from ..documents.models import EditSuggestion, SuggestionType, TextRange

__all__ = [
    "PatchApplyError",
    "PatchConflictError",
    "apply_patch",
    "apply_multiple_patches",
    "invert_suggestion",
    "find_conflicts",
    "rebase_suggestions",
]

LOGGER = logging.getLogger(__name__)


class PatchApplyError(RuntimeError):
    """Raised when a suggestion cannot be applied cleanly."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "range_mismatch",
        suggestion_id: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.suggestion_id = suggestion_id
        self.expected = expected
        self.actual = actual

    def details(self) -> dict[str, str | None]:
        return {
            "reason": self.reason,
            "suggestion_id": self.suggestion_id,
            "expected": self.expected,
            "actual": self.actual,
        }


class PatchConflictError(PatchApplyError):
    """Raised when accepted suggestions overlap in original coordinates."""

    def __init__(self, conflicting_ids: Iterable[str]) -> None:
        ids = tuple(dict.fromkeys(conflicting_ids))
        super().__init__(
            "Accepted suggestions overlap: " + ", ".join(ids),
            reason="overlap",
        )
        self.conflicting_ids = ids

    def details(self) -> dict[str, str | None]:
        payload = PatchApplyError.details(self)
        payload["conflicting_ids"] = ",".join(self.conflicting_ids)
        return payload


def _validate(content: str, suggestion: EditSuggestion) -> tuple[int, int]:
    start, end = suggestion.range.start, suggestion.range.end
    if end > len(content):
        raise PatchApplyError(
            f"Range {start}-{end} exceeds document length {len(content)}",
            reason="range_overflow",
            suggestion_id=suggestion.id,
        )
    if suggestion.type is SuggestionType.INSERT:
        if end != start:
            raise PatchApplyError(
                "Insert suggestions must use an empty range",
                reason="invalid_range",
                suggestion_id=suggestion.id,
            )
        return start, end
    if suggestion.original_text:
        actual = content[start:end]
        if actual != suggestion.original_text:
            raise PatchApplyError(
                "Suggestion no longer matches the document",
                reason="range_mismatch",
                suggestion_id=suggestion.id,
                expected=suggestion.original_text,
                actual=actual,
            )
    return start, end


def apply_patch(content: str, suggestion: EditSuggestion) -> str:
    """Apply a single suggestion and return the new content."""

    start, end = _validate(content, suggestion)
    if suggestion.type is SuggestionType.DELETE:
        return content[:start] + content[end:]
    # insert has start == end so this covers both remaining kinds
    return content[:start] + suggestion.suggested_text + content[end:]


def _length_delta(suggestion: EditSuggestion) -> int:
    if suggestion.type is SuggestionType.DELETE:
        return -suggestion.range.length
    return len(suggestion.suggested_text) - suggestion.range.length


def find_conflicts(suggestions: Sequence[EditSuggestion]) -> tuple[str, ...]:
    """Return ids of suggestions whose original ranges intersect another's."""

    conflicting: list[str] = []
    for index, first in enumerate(suggestions):
        for second in suggestions[index + 1 :]:
            if first.range.overlaps(second.range):
                conflicting.extend((first.id, second.id))
    return tuple(dict.fromkeys(conflicting))


def apply_multiple_patches(
    content: str,
    suggestions: Sequence[EditSuggestion],
    accepted_ids: Collection[str],
) -> str:
    """Apply every accepted suggestion, shifting later offsets as edits land.

    Suggestions are applied in ascending ``range.start`` order with proposal
    order breaking ties, so the result never depends on how ``accepted_ids``
    is enumerated. After each edit every remaining suggestion starting at or
    beyond the end of the edited span moves by the edit's length delta.

    The batch is atomic: any failure raises before a result is returned, so
    the caller's content is never partially patched.
    """

    wanted = set(accepted_ids)
    known = {suggestion.id for suggestion in suggestions}
    unknown = sorted(wanted - known)
    if unknown:
        raise PatchApplyError(
            "Unknown suggestion ids: " + ", ".join(unknown),
            reason="unknown_suggestion",
        )

    accepted = [suggestion for suggestion in suggestions if suggestion.id in wanted]
    if not accepted:
        return content

    conflicts = find_conflicts(accepted)
    if conflicts:
        raise PatchConflictError(conflicts)

    pending = sorted(enumerate(accepted), key=lambda item: (item[1].range.start, item[0]))
    queue = [suggestion for _, suggestion in pending]
    working = content
    for index, suggestion in enumerate(queue):
        working = apply_patch(working, suggestion)
        delta = _length_delta(suggestion)
        if not delta:
            continue
        # Carets sitting at the start of a replaced span stay in front of it.
        anchor = suggestion.range.end
        for later_index in range(index + 1, len(queue)):
            later = queue[later_index]
            if later.range.start >= anchor:
                queue[later_index] = replace(later, range=later.range.shifted(delta))
    LOGGER.debug("Applied %d suggestion(s); length %d -> %d", len(queue), len(content), len(working))
    return working


def rebase_suggestions(
    suggestions: Iterable[EditSuggestion],
    applied: Sequence[EditSuggestion],
) -> tuple[tuple[EditSuggestion, ...], tuple[str, ...]]:
    """Move ``suggestions`` into the coordinates left behind by ``applied``.

    Uses the same rule as :func:`apply_multiple_patches`: a suggestion starting
    at or beyond the end of an applied span shifts by that edit's delta.
    Suggestions overlapping an applied span no longer have meaningful offsets
    and are returned as invalidated ids instead.
    """

    rebased: list[EditSuggestion] = []
    invalidated: list[str] = []
    for suggestion in suggestions:
        if any(suggestion.range.overlaps(edit.range) for edit in applied):
            invalidated.append(suggestion.id)
            continue
        delta = sum(_length_delta(edit) for edit in applied if suggestion.range.start >= edit.range.end)
        if delta:
            suggestion = replace(suggestion, range=suggestion.range.shifted(delta))
        rebased.append(suggestion)
    return tuple(rebased), tuple(invalidated)


def invert_suggestion(suggestion: EditSuggestion) -> EditSuggestion:
    """Build the suggestion that undoes ``suggestion`` once it has been applied.

    Deletes and replaces need ``original_text`` to restore what they removed.
    """

    start = suggestion.range.start
    if suggestion.type is SuggestionType.INSERT:
        return EditSuggestion(
            type=SuggestionType.DELETE,
            range=TextRange(start, start + len(suggestion.suggested_text)),
            original_text=suggestion.suggested_text,
            reasoning=f"Undo {suggestion.id}",
        )
    if suggestion.range.length and not suggestion.original_text:
        raise PatchApplyError(
            "Cannot invert a suggestion without original text",
            reason="not_invertible",
            suggestion_id=suggestion.id,
        )
    if suggestion.type is SuggestionType.DELETE:
        return EditSuggestion(
            type=SuggestionType.INSERT,
            range=TextRange(start, start),
            suggested_text=suggestion.original_text,
            reasoning=f"Undo {suggestion.id}",
        )
    return EditSuggestion(
        type=SuggestionType.REPLACE,
        range=TextRange(start, start + len(suggestion.suggested_text)),
        original_text=suggestion.suggested_text,
        suggested_text=suggestion.original_text,
        reasoning=f"Undo {suggestion.id}",
    )
