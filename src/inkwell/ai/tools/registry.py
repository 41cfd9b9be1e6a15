"""Tool registry.

Holds the tool implementations the executor may dispatch to and exposes
their specs for forwarding to the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ...documents.store import DocumentStore
from .add_edit_suggestion import AddEditSuggestionTool
from .read_document import ReadDocumentTool
from .types import Tool, ToolSpec
from .update_concept import UpdateConceptTool
from .update_document import UpdateDocumentTool
from .update_outline import UpdateOutlineTool
from .update_stage import UpdateStageTool

__all__ = [
    "ToolRegistry",
    "DuplicateToolError",
    "build_default_registry",
]

LOGGER = logging.getLogger(__name__)


class DuplicateToolError(Exception):
    """Raised when attempting to register a tool with a name that already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ToolRegistry:
    """Name-indexed collection of tools.

    Example:
        registry = ToolRegistry()
        registry.register(ReadDocumentTool(store))
        tool = registry.get("read_document")
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool, *, allow_override: bool = False) -> None:
        """Register a tool implementation.

        Raises:
            DuplicateToolError: If the name is taken and ``allow_override`` is False.
        """
        name = tool.name
        if name in self._tools and not allow_override:
            raise DuplicateToolError(name)
        self._tools[name] = tool
        LOGGER.debug("Registered tool: %s", name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_specs(self) -> list[ToolSpec]:
        return [tool.spec for tool in self._tools.values()]


def build_default_registry(store: DocumentStore) -> ToolRegistry:
    """Return a registry holding the six document tools bound to ``store``."""

    return ToolRegistry(
        [
            ReadDocumentTool(store),
            UpdateDocumentTool(store),
            UpdateConceptTool(store),
            UpdateOutlineTool(store),
            UpdateStageTool(store),
            AddEditSuggestionTool(store),
        ]
    )
