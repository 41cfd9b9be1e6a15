"""Value types shared by the agent loop and its callers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..messages import ToolUseBlock

__all__ = [
    "MAX_ITERATIONS",
    "LoopState",
    "LoopConfig",
    "LoopOutcome",
    "LoopHooks",
    "ChunkCallback",
    "ErrorCallback",
    "ToolUseCallback",
    "MessageStopCallback",
]

MAX_ITERATIONS = 10


class LoopState(str, Enum):
    IDLE = "idle"
    BUILDING_CONTEXT = "building_context"
    AWAITING_RESPONSE = "awaiting_response"
    TOOL_EXECUTION = "tool_execution"
    TERMINATED = "terminated"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class LoopConfig:
    """Configuration for the agent loop.

    Attributes:
        max_iterations: Ceiling on model round-trips per user message.
        tool_timeout: Per-tool timeout in seconds; ``None`` disables it.
        preview_char_limit: Characters of document preview placed in the prompt.
        diff_char_limit: Characters of content diff placed in the prompt.
    """

    max_iterations: int = MAX_ITERATIONS
    tool_timeout: float | None = 30.0
    preview_char_limit: int = 2_000
    diff_char_limit: int = 500

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")


@dataclass(slots=True, frozen=True)
class LoopOutcome:
    """How a call to ``send_message`` ended.

    ``status`` is ``IDLE`` for a natural finish, ``TERMINATED`` when the
    iteration ceiling was hit and ``FAILED`` after a transport error.
    """

    status: LoopState
    iterations: int
    stop_reason: str | None = None
    error: str | None = None
    is_credential_error: bool = False

    @property
    def ok(self) -> bool:
        return self.status is not LoopState.FAILED


ChunkCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[str, bool], None]
ToolUseCallback = Callable[[ToolUseBlock], None]
MessageStopCallback = Callable[[str], None]


@dataclass(slots=True)
class LoopHooks:
    """Optional progress callbacks; failures inside them are logged and ignored."""

    on_chunk: ChunkCallback | None = None
    on_error: ErrorCallback | None = None
    on_tool_use: ToolUseCallback | None = None
    on_message_stop: MessageStopCallback | None = None
