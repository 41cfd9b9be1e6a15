"""Tool recording the concept (title, argument, audience, tone) of the piece."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...documents.models import ConceptSnapshot
from .errors import ToolValidationError
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool

_FIELDS = ("title", "coreArgument", "audience", "tone")


@dataclass
class UpdateConceptTool(DocumentTool):
    name: ClassVar[str] = "update_concept"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["update_concept"]
    is_write: ClassVar[bool] = True

    def check(self, arguments: Mapping[str, Any]) -> None:
        for key in _FIELDS:
            if not arguments[key].strip():
                raise ToolValidationError(message=f"{key} cannot be blank", field_name=key)

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        concept = ConceptSnapshot(
            title=arguments["title"].strip(),
            core_argument=arguments["coreArgument"].strip(),
            audience=arguments["audience"].strip(),
            tone=arguments["tone"].strip(),
        )
        self.store.set_concept(concept)
        payload = concept.to_dict()
        payload.pop("updatedAt")
        return {"concept": payload}


__all__ = ["UpdateConceptTool"]
