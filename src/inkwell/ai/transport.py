"""Streaming transport contract consumed by the agent loop.

A transport turns one request into a single ordered event stream: any number
of chunk and tool-use events, then exactly one terminal event. The terminal
event is either a :class:`StopEvent` or an :class:`ErrorEvent`; nothing is
emitted after it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union, runtime_checkable

from .tools.types import ToolSpec

__all__ = [
    "ChunkEvent",
    "ToolUseEvent",
    "ErrorEvent",
    "StopEvent",
    "TransportEvent",
    "ModelTransport",
    "NATURAL_STOP_REASONS",
]

NATURAL_STOP_REASONS = frozenset({"end_turn", "stop_sequence"})


@dataclass(slots=True, frozen=True)
class ChunkEvent:
    text: str
    done: bool = False


@dataclass(slots=True, frozen=True)
class ToolUseEvent:
    id: str
    name: str
    input: Any = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ErrorEvent:
    message: str
    status_code: int | None = None


@dataclass(slots=True, frozen=True)
class StopEvent:
    stop_reason: str


TransportEvent = Union[ChunkEvent, ToolUseEvent, ErrorEvent, StopEvent]


@runtime_checkable
class ModelTransport(Protocol):
    def stream(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        system: str,
        tools: Sequence[ToolSpec],
    ) -> AsyncIterator[TransportEvent]: ...
