"""Tool system types.

Each document tool is a small dataclass bound to the injected store. The
shared :class:`DocumentTool` base runs schema validation and the tool's own
checks before any handler code touches the store.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol, runtime_checkable

from ...documents.store import DocumentStore
from .errors import ToolError, ToolExecutionError
from .schemas import TOOL_SCHEMAS, validate_tool_input

__all__ = [
    "ToolSpec",
    "Tool",
    "DocumentTool",
    "success_payload",
    "error_payload",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Tool Specification
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """Specification for a tool's interface.

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does.
        parameters: JSON Schema for the tool's input.
        is_write: Whether the tool modifies document state.
    """

    name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    is_write: bool = False

    def to_openai_tool(self) -> dict[str, Any]:
        """Convert to OpenAI function-tool format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": dict(self.parameters) if self.parameters else {
                    "type": "object",
                    "properties": {},
                },
            },
        }


# -----------------------------------------------------------------------------
# Result payloads
# -----------------------------------------------------------------------------


def success_payload(**data: Any) -> str:
    return json.dumps({"success": True, **data}, ensure_ascii=False)


def error_payload(error: ToolError) -> str:
    return json.dumps(error.to_dict(), ensure_ascii=False, default=str)


# -----------------------------------------------------------------------------
# Tool Protocol
# -----------------------------------------------------------------------------


@runtime_checkable
class Tool(Protocol):
    """Protocol for tool implementations registered with the executor."""

    @property
    def name(self) -> str: ...

    @property
    def spec(self) -> ToolSpec: ...

    async def execute(self, arguments: Any) -> dict[str, Any]:
        """Run the tool; raise :class:`ToolError` subclasses on failure."""
        ...


@dataclass
class DocumentTool:
    """Base class for tools operating on a :class:`DocumentStore`.

    Subclasses set ``name``/``description``/``is_write``, may override
    :meth:`check` for rules JSON Schema cannot express, and implement
    :meth:`apply` which performs the mutation and returns the success data.
    """

    store: DocumentStore

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    is_write: ClassVar[bool] = False

    @property
    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=TOOL_SCHEMAS[self.name],
            is_write=self.is_write,
        )

    async def execute(self, arguments: Any) -> dict[str, Any]:
        validated = validate_tool_input(self.name, arguments)
        self.check(validated)
        try:
            return self.apply(validated)
        except ToolError:
            raise
        except (ValueError, TypeError, KeyError) as exc:
            raise ToolExecutionError(message=str(exc) or exc.__class__.__name__) from exc

    def check(self, arguments: Mapping[str, Any]) -> None:
        """Per-tool validation hook; raise ``ToolValidationError`` to reject."""

    def apply(self, arguments: Mapping[str, Any]) -> dict[str, Any]:  # pragma: no cover - abstract
        raise NotImplementedError
