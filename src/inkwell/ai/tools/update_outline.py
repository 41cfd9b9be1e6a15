"""Tool replacing the locked outline with a new ordered list of sections."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...documents.models import OutlineSection
from .errors import ToolValidationError
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool


@dataclass
class UpdateOutlineTool(DocumentTool):
    name: ClassVar[str] = "update_outline"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["update_outline"]
    is_write: ClassVar[bool] = True

    def check(self, arguments: Mapping[str, Any]) -> None:
        seen: set[str] = set()
        for index, section in enumerate(arguments["sections"]):
            section_id = section["id"]
            if section_id in seen:
                raise ToolValidationError(
                    message=f"Duplicate section id {section_id!r}",
                    field_name=f"sections.{index}.id",
                )
            seen.add(section_id)

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        sections = [OutlineSection.from_dict(item) for item in arguments["sections"]]
        self.store.set_outline(sections)
        return {
            "sectionCount": len(sections),
            "sections": [{"id": section.id, "title": section.title} for section in sections],
        }


__all__ = ["UpdateOutlineTool"]
