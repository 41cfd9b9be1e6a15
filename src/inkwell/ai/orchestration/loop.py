"""Agent loop controller.

One user message drives a bounded sequence of model round-trips. Each
iteration rebuilds the system prompt from the live document, streams a
response into an assistant placeholder, and, when the model asks for tools,
runs them and feeds the results back. The loop ends on a natural stop, on a
transport error, or at the iteration ceiling.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Callable

from ...documents.store import DocumentStore
from ..errors import AgentBusyError, TransportError, classify_transport_error
from ..messages import ChatHistory, ContentBlock, Message, TextBlock, ToolUseBlock
from ..prompts import PromptContextBuilder
from ..tools.executor import ExecutorConfig, ToolExecutor
from ..tools.registry import ToolRegistry, build_default_registry
from ..transport import (
    NATURAL_STOP_REASONS,
    ChunkEvent,
    ErrorEvent,
    ModelTransport,
    StopEvent,
    ToolUseEvent,
)
from .types import LoopConfig, LoopHooks, LoopOutcome, LoopState

__all__ = ["AgentLoop"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _TurnResult:
    text: str = ""
    tool_uses: list[ToolUseBlock] = field(default_factory=list)
    stop_reason: str | None = None


class AgentLoop:
    """Runs the tool-calling conversation for one document.

    Only one message may be in flight at a time; a second ``send_message``
    while a turn is running raises :class:`AgentBusyError`. Whatever the
    outcome, the document snapshot is marked seen once the turn ends so the
    next prompt only reports edits made after it.
    """

    def __init__(
        self,
        transport: ModelTransport,
        store: DocumentStore,
        *,
        registry: ToolRegistry | None = None,
        executor: ToolExecutor | None = None,
        prompt_builder: PromptContextBuilder | None = None,
        history: ChatHistory | None = None,
        config: LoopConfig | None = None,
        hooks: LoopHooks | None = None,
    ) -> None:
        self._transport = transport
        self._store = store
        self._config = config or LoopConfig()
        if executor is None:
            executor = ToolExecutor(
                registry or build_default_registry(store),
                ExecutorConfig(default_timeout=self._config.tool_timeout),
            )
        self._executor = executor
        self._prompt_builder = prompt_builder or PromptContextBuilder(
            preview_char_limit=self._config.preview_char_limit,
            diff_char_limit=self._config.diff_char_limit,
        )
        self._history = history if history is not None else ChatHistory()
        self._hooks = hooks or LoopHooks()
        self._state = LoopState.IDLE
        self._running = False
        self._task: asyncio.Task[LoopOutcome] | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def history(self) -> ChatHistory:
        return self._history

    @property
    def config(self) -> LoopConfig:
        return self._config

    @property
    def hooks(self) -> LoopHooks:
        return self._hooks

    @property
    def is_running(self) -> bool:
        return self._running or (self._task is not None and not self._task.done())

    async def send_message(self, text: str) -> LoopOutcome:
        """Append ``text`` as a user message and run the loop to completion."""

        if self._running:
            raise AgentBusyError("A message is already being processed")
        self._running = True
        try:
            self._history.add_user(text)
            return await self._run()
        finally:
            self._running = False

    def start(self, text: str) -> asyncio.Task[LoopOutcome]:
        """Schedule ``send_message`` on the running event loop and return its task."""

        if self.is_running:
            raise AgentBusyError("A message is already being processed")
        task = asyncio.get_running_loop().create_task(self.send_message(text))
        self._task = task
        return task

    def cancel(self) -> bool:
        """Cancel the task created by :meth:`start`, if it is still running."""

        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    def reset(self) -> None:
        if self.is_running:
            raise AgentBusyError("Cannot reset while a message is being processed")
        self._history.clear()
        self._state = LoopState.IDLE

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    async def _run(self) -> LoopOutcome:
        max_iterations = self._config.max_iterations
        iteration = 0
        stop_reason: str | None = None
        placeholder: Message | None = None
        try:
            while iteration < max_iterations:
                iteration += 1
                self._set_state(LoopState.BUILDING_CONTEXT)
                system = self._prompt_builder.build_from_store(self._store)
                placeholder = self._history.add_placeholder()
                messages = self._history.to_api_messages(exclude_id=placeholder.id)

                self._set_state(LoopState.AWAITING_RESPONSE)
                turn = await self._stream_turn(placeholder, messages, system)
                stop_reason = turn.stop_reason

                tool_uses = turn.tool_uses
                if tool_uses and stop_reason in NATURAL_STOP_REASONS:
                    LOGGER.warning(
                        "Dropping %d tool call(s) received with stop reason %s",
                        len(tool_uses),
                        stop_reason,
                    )
                    tool_uses = []
                self._finalize_placeholder(placeholder, turn.text, tool_uses)
                placeholder = None
                self._notify("on_message_stop", stop_reason)

                if not tool_uses:
                    self._set_state(LoopState.IDLE)
                    LOGGER.debug("Loop finished after %d iteration(s) (%s)", iteration, stop_reason)
                    return LoopOutcome(status=LoopState.IDLE, iterations=iteration, stop_reason=stop_reason)

                self._set_state(LoopState.TOOL_EXECUTION)
                results = await self._executor.execute_batch(tool_uses)
                self._history.add_tool_results(results)

            LOGGER.warning("Agent loop reached max iterations (%d)", max_iterations)
            self._set_state(LoopState.TERMINATED)
            return LoopOutcome(status=LoopState.TERMINATED, iterations=iteration, stop_reason=stop_reason)
        except TransportError as exc:
            self._discard_placeholder(placeholder)
            self._set_state(LoopState.FAILED)
            LOGGER.error("Agent loop failed on iteration %d: %s", iteration, exc.message)
            self._notify("on_error", exc.message, exc.is_credential_error)
            return LoopOutcome(
                status=LoopState.FAILED,
                iterations=iteration,
                stop_reason=stop_reason,
                error=exc.message,
                is_credential_error=exc.is_credential_error,
            )
        except asyncio.CancelledError:
            LOGGER.info("Agent loop cancelled on iteration %d", iteration)
            self._discard_placeholder(placeholder)
            self._set_state(LoopState.TERMINATED)
            raise
        finally:
            self._store.mark_seen()

    async def _stream_turn(self, placeholder: Message, messages: list[dict[str, Any]], system: str) -> _TurnResult:
        turn = _TurnResult()
        parts: list[str] = []
        stream = self._transport.stream(messages, system=system, tools=self._executor.registry.list_specs())
        try:
            async for event in stream:
                if isinstance(event, ChunkEvent):
                    if event.text:
                        parts.append(event.text)
                        self._history.update(placeholder.id, content="".join(parts))
                    self._notify("on_chunk", event.text, event.done)
                elif isinstance(event, ToolUseEvent):
                    block = ToolUseBlock(id=event.id or f"toolu_{uuid.uuid4().hex}", name=event.name, input=event.input)
                    turn.tool_uses.append(block)
                    self._notify("on_tool_use", block)
                elif isinstance(event, ErrorEvent):
                    raise classify_transport_error(event.message, event.status_code)
                elif isinstance(event, StopEvent):
                    turn.stop_reason = event.stop_reason
                    break
        except TransportError:
            raise
        except Exception as exc:
            LOGGER.exception("Transport stream raised")
            raise classify_transport_error(str(exc) or exc.__class__.__name__) from exc
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if turn.stop_reason is None:
            raise TransportError("Stream ended without a stop event")
        turn.text = "".join(parts)
        return turn

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _finalize_placeholder(self, placeholder: Message, text: str, tool_uses: Sequence[ToolUseBlock]) -> None:
        blocks: list[ContentBlock] = []
        if text:
            blocks.append(TextBlock(text))
        blocks.extend(tool_uses)
        if not blocks:
            self._history.remove(placeholder.id)
            return
        self._history.update(placeholder.id, content=tuple(blocks))

    def _discard_placeholder(self, placeholder: Message | None) -> None:
        if placeholder is None:
            return
        current = self._history.get(placeholder.id)
        if current is not None and current.is_empty():
            self._history.remove(placeholder.id)

    def _set_state(self, state: LoopState) -> None:
        if state is not self._state:
            LOGGER.debug("Agent loop state %s -> %s", self._state.value, state.value)
        self._state = state

    def _notify(self, name: str, *args: Any) -> None:
        callback: Callable[..., Any] | None = getattr(self._hooks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            LOGGER.exception("Agent loop hook %s failed", name)
