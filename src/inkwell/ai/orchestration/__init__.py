"""Agent loop controller and its value types."""

from .loop import AgentLoop
from .types import (
    MAX_ITERATIONS,
    ChunkCallback,
    ErrorCallback,
    LoopConfig,
    LoopHooks,
    LoopOutcome,
    LoopState,
    MessageStopCallback,
    ToolUseCallback,
)

__all__ = [
    "AgentLoop",
    "ChunkCallback",
    "ErrorCallback",
    "LoopConfig",
    "LoopHooks",
    "LoopOutcome",
    "LoopState",
    "MAX_ITERATIONS",
    "MessageStopCallback",
    "ToolUseCallback",
]
