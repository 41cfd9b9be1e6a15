"""Tool proposing a targeted edit the user can later accept or reject."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...documents.models import EditSuggestion, SuggestionType, TextRange
from .errors import ErrorCode, ToolExecutionError, ToolValidationError
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool

LOGGER = logging.getLogger(__name__)


@dataclass
class AddEditSuggestionTool(DocumentTool):
    """Record an :class:`EditSuggestion` against the current content.

    The range is either given explicitly through ``start``/``end`` or found
    by locating ``before``, which must then occur exactly once.
    """

    name: ClassVar[str] = "add_edit_suggestion"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["add_edit_suggestion"]
    is_write: ClassVar[bool] = True

    def check(self, arguments: Mapping[str, Any]) -> None:
        kind = arguments.get("type", SuggestionType.REPLACE.value)
        has_range = "start" in arguments
        if has_range and arguments["end"] < arguments["start"]:
            raise ToolValidationError(message="end must not precede start", field_name="end")
        if kind == SuggestionType.INSERT.value:
            if not has_range:
                raise ToolValidationError(message="Insert suggestions need a start offset", field_name="start")
            if arguments["end"] != arguments["start"]:
                raise ToolValidationError(message="Insert suggestions need end equal to start", field_name="end")
        elif not has_range and not arguments["before"]:
            raise ToolValidationError(
                message="before cannot be empty when no range is given",
                field_name="before",
            )

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        content = self.store.get_content()
        kind = SuggestionType(arguments.get("type", SuggestionType.REPLACE.value))
        before = arguments["before"]

        if "start" in arguments:
            span = TextRange(arguments["start"], arguments["end"])
            if span.end > len(content):
                raise ToolExecutionError(
                    error_code=ErrorCode.POSITION_OUT_OF_BOUNDS,
                    message=f"Range {span.start}-{span.end} is outside the document (length {len(content)})",
                    details={"range": span.to_dict(), "length": len(content)},
                )
            actual = content[span.start : span.end]
            if before and kind is not SuggestionType.INSERT and actual != before:
                raise ToolExecutionError(
                    error_code=ErrorCode.TEXT_NOT_FOUND,
                    message="Text at the given range does not match `before`",
                    details={"expected": before, "actual": actual},
                    suggestion="Call read_document and resend the suggestion with current offsets",
                )
        else:
            span = self._locate(content, before)
            actual = before

        suggestion = EditSuggestion(
            type=kind,
            range=span,
            original_text="" if kind is SuggestionType.INSERT else actual,
            suggested_text="" if kind is SuggestionType.DELETE else arguments["after"],
            reasoning=arguments.get("rationale", ""),
            scope=arguments["scope"],
        )
        self.store.add_suggestion(suggestion)
        LOGGER.debug("Recorded %s suggestion %s at %s", kind.value, suggestion.id, span.to_tuple())
        return {"suggestionId": suggestion.id, "scope": suggestion.scope, "range": span.to_dict()}

    @staticmethod
    def _locate(content: str, before: str) -> TextRange:
        occurrences = content.count(before)
        if occurrences == 0:
            raise ToolExecutionError(
                error_code=ErrorCode.TEXT_NOT_FOUND,
                message="`before` text was not found in the document",
                suggestion="Quote the original text exactly as it appears",
            )
        if occurrences > 1:
            raise ToolExecutionError(
                error_code=ErrorCode.AMBIGUOUS_TEXT,
                message=f"`before` text occurs {occurrences} times in the document",
                details={"occurrences": occurrences},
                suggestion="Quote more surrounding text or pass start/end offsets",
            )
        start = content.index(before)
        return TextRange(start, start + len(before))


__all__ = ["AddEditSuggestionTool"]
