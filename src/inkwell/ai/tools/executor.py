"""Tool executor.

Turns model tool calls into tool results. Every failure, from an unknown
tool name to a handler crash or timeout, becomes an ``is_error`` result so
the agent loop can report it back to the model and keep going.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from ..messages import ToolResultBlock, ToolUseBlock
from .errors import ToolError, ToolExecutionError, ToolTimeoutError, UnknownToolError
from .registry import ToolRegistry
from .types import error_payload, success_payload

__all__ = [
    "ToolExecutor",
    "ExecutorConfig",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Executor Configuration
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ExecutorConfig:
    """Configuration for the tool executor.

    Attributes:
        default_timeout: Per-call timeout in seconds; ``None`` disables it.
        log_arguments: Whether to log tool arguments (may contain document text).
    """

    default_timeout: float | None = 30.0
    log_arguments: bool = False


# -----------------------------------------------------------------------------
# Tool Executor
# -----------------------------------------------------------------------------


class ToolExecutor:
    """Executor for running tools from a registry.

    Example:
        executor = ToolExecutor(build_default_registry(store))
        result = await executor.execute(ToolUseBlock(id="t1", name="read_document"))
    """

    def __init__(
        self,
        registry: ToolRegistry,
        config: ExecutorConfig | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or ExecutorConfig()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    async def execute(self, tool_use: ToolUseBlock) -> ToolResultBlock:
        """Run one tool call; never raises except on cancellation."""

        name = tool_use.name
        if self._config.log_arguments:
            LOGGER.debug("Executing tool %s (call_id=%s) with arguments: %s", name, tool_use.id, tool_use.input)
        else:
            LOGGER.debug("Executing tool %s (call_id=%s)", name, tool_use.id)

        tool = self._registry.get(name)
        if tool is None:
            LOGGER.warning("Tool '%s' not found", name)
            return self._error(tool_use, UnknownToolError(tool_name=name))

        timeout = self._config.default_timeout
        start_time = time.perf_counter()
        try:
            if timeout is not None and timeout > 0:
                data = await asyncio.wait_for(tool.execute(tool_use.input), timeout=timeout)
            else:
                data = await tool.execute(tool_use.input)
        except asyncio.TimeoutError:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LOGGER.warning("Tool %s timed out after %.1fms (timeout=%.1fs)", name, duration_ms, timeout)
            return self._error(tool_use, ToolTimeoutError(timeout_seconds=timeout))
        except ToolError as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LOGGER.warning("Tool %s failed after %.1fms: %s", name, duration_ms, exc)
            return self._error(tool_use, exc)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LOGGER.exception("Tool %s crashed after %.1fms", name, duration_ms)
            return self._error(
                tool_use,
                ToolExecutionError(message=str(exc) or exc.__class__.__name__, details={"type": type(exc).__name__}),
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        LOGGER.debug("Tool %s completed in %.1fms", name, duration_ms)
        return ToolResultBlock(tool_use_id=tool_use.id, content=success_payload(**data))

    async def execute_batch(self, tool_uses: Sequence[ToolUseBlock]) -> list[ToolResultBlock]:
        """Run all calls concurrently and return their results in request order.

        Returns only once every call has finished; one failing call never
        cancels its siblings.
        """

        if not tool_uses:
            return []
        return list(await asyncio.gather(*(self.execute(tool_use) for tool_use in tool_uses)))

    @staticmethod
    def _error(tool_use: ToolUseBlock, error: ToolError) -> ToolResultBlock:
        return ToolResultBlock(tool_use_id=tool_use.id, content=error_payload(error), is_error=True)
