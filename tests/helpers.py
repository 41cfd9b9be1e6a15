"""Shared test helpers and stub classes.

Import from here instead of duplicating fakes in individual test files:

    from tests.helpers import ScriptedTransport
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from inkwell.ai.orchestration import LoopHooks
from inkwell.ai.tools import ToolSpec
from inkwell.ai.transport import ChunkEvent, StopEvent, ToolUseEvent, TransportEvent

Script = Sequence[TransportEvent | BaseException]


@dataclass
class TransportRequest:
    messages: list[dict[str, Any]]
    system: str
    tools: list[ToolSpec]


class ScriptedTransport:
    """Transport replaying one scripted event list per request.

    An exception placed in a script is raised at that point of the stream.
    The last script is repeated once the list runs out.
    """

    def __init__(self, scripts: Sequence[Script] | Callable[[int], Script]) -> None:
        self._scripts = scripts
        self.requests: list[TransportRequest] = []

    def _script_for(self, index: int) -> Script:
        if callable(self._scripts):
            return self._scripts(index)
        return self._scripts[min(index, len(self._scripts) - 1)]

    async def stream(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        system: str,
        tools: Sequence[ToolSpec],
    ):
        index = len(self.requests)
        self.requests.append(TransportRequest(messages=[dict(item) for item in messages], system=system, tools=list(tools)))
        for event in self._script_for(index):
            if isinstance(event, BaseException):
                raise event
            yield event


def always_tool_calling(index: int) -> Script:
    return [
        ChunkEvent(text=f"step {index}"),
        ToolUseEvent(id=f"call_{index}", name="read_document", input={}),
        StopEvent(stop_reason="tool_use"),
    ]


class BlockingTransport:
    """Transport that parks inside the stream until ``release`` is set."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def stream(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        system: str,
        tools: Sequence[ToolSpec],
    ):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        yield ChunkEvent(text="late reply")
        yield StopEvent(stop_reason="end_turn")


@dataclass
class RecordingHooks:
    chunks: list[tuple[str, bool]] = field(default_factory=list)
    errors: list[tuple[str, bool]] = field(default_factory=list)
    tool_uses: list[Any] = field(default_factory=list)
    stops: list[str] = field(default_factory=list)

    def as_hooks(self) -> LoopHooks:
        return LoopHooks(
            on_chunk=lambda chunk, done: self.chunks.append((chunk, done)),
            on_error=lambda message, is_credential: self.errors.append((message, is_credential)),
            on_tool_use=self.tool_uses.append,
            on_message_stop=self.stops.append,
        )
