"""Tool moving the document to another writing stage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from ...documents.models import Stage
from .schemas import TOOL_DESCRIPTIONS
from .types import DocumentTool


@dataclass
class UpdateStageTool(DocumentTool):
    """Any transition is accepted; stage ordering is a UI convention."""

    name: ClassVar[str] = "update_stage"
    description: ClassVar[str] = TOOL_DESCRIPTIONS["update_stage"]
    is_write: ClassVar[bool] = True

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        previous = self.store.get_stage()
        target = Stage.coerce(arguments["stage"])
        self.store.set_stage(target)
        return {"previousStage": previous.value, "newStage": target.value}


__all__ = ["UpdateStageTool"]
