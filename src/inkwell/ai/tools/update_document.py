"""Tool replacing, inserting into, or appending to the document content."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...utils.text import count_words
from .errors import ErrorCode, ToolExecutionError
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool

LOGGER = logging.getLogger(__name__)


@dataclass
class UpdateDocumentTool(DocumentTool):
    """Write content in one of three modes.

    ``insert`` requires a position inside the current content; anything past
    the end is rejected rather than clamped. ``append`` ignores ``position``.
    """

    name: ClassVar[str] = "update_document"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["update_document"]
    is_write: ClassVar[bool] = True

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        operation = arguments["operation"]
        text = arguments["content"]
        current = self.store.get_content()

        if operation == "replace":
            updated = text
        elif operation == "insert":
            position = int(arguments["position"])
            if position > len(current):
                raise ToolExecutionError(
                    error_code=ErrorCode.POSITION_OUT_OF_BOUNDS,
                    message=f"Insert position {position} is outside the document (length {len(current)})",
                    details={"position": position, "length": len(current)},
                    suggestion="Call read_document to get the current content length",
                )
            updated = current[:position] + text + current[position:]
        else:
            updated = current + text

        self.store.set_content(updated)
        LOGGER.debug("update_document %s: %d -> %d chars", operation, len(current), len(updated))
        return {"operation": operation, "wordCount": count_words(updated)}


__all__ = ["UpdateDocumentTool"]
