"""Tool returning the full document content with its stage and word count."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...utils.text import count_words
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool


@dataclass
class ReadDocumentTool(DocumentTool):
    name: ClassVar[str] = "read_document"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["read_document"]

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        content = self.store.get_content()
        return {
            "content": content,
            "stage": self.store.get_stage().value,
            "wordCount": count_words(content),
            "filename": getattr(self.store, "filename", None),
        }


__all__ = ["ReadDocumentTool"]
