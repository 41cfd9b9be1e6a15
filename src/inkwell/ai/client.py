"""Async transport for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncOpenAI,
    ContentFilterFinishReasonError,
    InternalServerError,
    LengthFinishReasonError,
    RateLimitError,
)
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .tools.types import ToolSpec
from .transport import ChunkEvent, ErrorEvent, StopEvent, ToolUseEvent, TransportEvent

__all__ = ["AIClient", "ClientSettings", "FINISH_REASON_MAP"]

LOGGER = logging.getLogger(__name__)

FINISH_REASON_MAP: dict[str, str] = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "length": "max_tokens",
    "content_filter": "refusal",
}

_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the AI client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    temperature: float | None = 0.7
    max_tokens: int | None = None
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    metadata: Mapping[str, str] | None = None
    debug_logging: bool = False


class _StreamInterrupted(Exception):
    """A stream failed after emitting events; retrying would duplicate them."""


@dataclass(slots=True)
class _PendingToolCall:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


@dataclass(slots=True)
class _StreamState:
    emitted: bool = False
    finish_reason: str | None = None
    tool_calls: dict[int, _PendingToolCall] = field(default_factory=dict)


class AIClient:
    """Streaming :class:`~inkwell.ai.transport.ModelTransport` over the OpenAI SDK.

    History arrives in block form (text, tool_use, tool_result) and is
    converted into chat-completions messages. Opening the stream is retried
    while nothing has been emitted yet; once any event went out, a failure
    is reported as an :class:`ErrorEvent` instead.
    """

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def stream(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        system: str,
        tools: Sequence[ToolSpec],
    ) -> AsyncIterator[TransportEvent]:
        payload = self._build_chat_payload(messages, system=system, tools=tools)
        LOGGER.debug(
            "Starting streamed chat completion via %s with %s message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        state = _StreamState()
        try:
            async for attempt in self._retrying():
                with attempt:
                    state = _StreamState()
                    async for event in self._stream_once(payload, state):
                        yield event
                    break
        except _StreamInterrupted as exc:
            LOGGER.error("Stream interrupted after output: %s", exc)
            yield self._error_event(exc.__cause__ or exc)
            return
        except ContentFilterFinishReasonError as exc:
            yield ErrorEvent(message=str(exc) or "Response blocked by the content filter")
            return
        except (APIError, httpx.HTTPError) as exc:
            LOGGER.error("Chat completion failed: %s", exc)
            yield self._error_event(exc)
            return

        if state.finish_reason is None:
            LOGGER.warning("Stream ended without a finish reason")
            return
        for index in sorted(state.tool_calls):
            yield self._tool_use_event(state.tool_calls[index])
        yield ChunkEvent(text="", done=True)
        yield StopEvent(stop_reason=self._map_finish_reason(state.finish_reason, bool(state.tool_calls)))

    async def _stream_once(self, payload: Mapping[str, Any], state: _StreamState) -> AsyncIterator[TransportEvent]:
        try:
            async with self._client.chat.completions.stream(**payload) as stream:
                async for event in stream:
                    chunk = self._consume_stream_event(event, state)
                    if chunk is not None:
                        state.emitted = True
                        yield chunk
        except LengthFinishReasonError:
            state.finish_reason = "length"
        except _RETRYABLE_ERRORS as exc:
            if state.emitted:
                raise _StreamInterrupted(str(exc)) from exc
            raise

    def _consume_stream_event(self, event: Any, state: _StreamState) -> ChunkEvent | None:
        event_type = getattr(event, "type", None)
        if event_type == "content.delta":
            delta_text = getattr(event, "delta", None)
            return ChunkEvent(text=str(delta_text)) if delta_text else None
        if event_type == "chunk":
            for choice in getattr(event.chunk, "choices", None) or ():
                delta = getattr(choice, "delta", None)
                for call in getattr(delta, "tool_calls", None) or ():
                    pending = state.tool_calls.setdefault(call.index, _PendingToolCall())
                    if getattr(call, "id", None):
                        pending.id = call.id
                    function = getattr(call, "function", None)
                    if function is not None:
                        if getattr(function, "name", None):
                            pending.name = function.name
                        if getattr(function, "arguments", None):
                            pending.arguments.append(function.arguments)
                if getattr(choice, "finish_reason", None):
                    state.finish_reason = choice.finish_reason
        return None

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _tool_use_event(call: _PendingToolCall) -> ToolUseEvent:
        raw = "".join(call.arguments)
        arguments: Any
        if not raw.strip():
            arguments = {}
        else:
            try:
                arguments = json.loads(raw)
            except ValueError:
                # Left as the raw string; validation reports it to the model.
                LOGGER.warning("Tool call %s sent malformed JSON arguments", call.name)
                arguments = raw
        return ToolUseEvent(id=call.id, name=call.name, input=arguments)

    @staticmethod
    def _map_finish_reason(reason: str, has_tool_calls: bool) -> str:
        mapped = FINISH_REASON_MAP.get(reason, reason)
        # Some compatible servers report "stop" alongside tool calls.
        if has_tool_calls and mapped == "end_turn":
            return "tool_use"
        return mapped

    @staticmethod
    def _error_event(exc: BaseException) -> ErrorEvent:
        status_code = exc.status_code if isinstance(exc, APIStatusError) else None
        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        return ErrorEvent(message=message, status_code=status_code)

    # ------------------------------------------------------------------
    # Payload construction
    # ------------------------------------------------------------------
    def _build_chat_payload(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        system: str,
        tools: Sequence[ToolSpec],
    ) -> dict[str, Any]:
        converted = self.convert_messages(messages)
        if not converted:
            raise ValueError("At least one message is required to start a chat")
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [{"role": "system", "content": system}, *converted],
        }
        if tools:
            payload["tools"] = [spec.to_openai_tool() for spec in tools]
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        if self._settings.max_tokens is not None:
            payload["max_tokens"] = self._settings.max_tokens
        if self._settings.metadata:
            payload["metadata"] = dict(self._settings.metadata)
        return payload

    @staticmethod
    def convert_messages(messages: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Convert block-structured history into chat-completions messages."""

        converted: list[dict[str, Any]] = []
        for message in messages:
            role = message["role"]
            content = message["content"]
            if isinstance(content, str):
                converted.append({"role": role, "content": content})
                continue

            texts = [block["text"] for block in content if block.get("type") == "text" and block.get("text")]
            if role == "assistant":
                entry: dict[str, Any] = {"role": "assistant", "content": "".join(texts) or None}
                calls = [
                    {
                        "id": block["id"],
                        "type": "function",
                        "function": {
                            "name": block["name"],
                            "arguments": _encode_arguments(block.get("input")),
                        },
                    }
                    for block in content
                    if block.get("type") == "tool_use"
                ]
                if calls:
                    entry["tool_calls"] = calls
                converted.append(entry)
                continue

            for block in content:
                if block.get("type") == "tool_result":
                    converted.append(
                        {
                            "role": "tool",
                            "tool_call_id": block["tool_use_id"],
                            "content": block.get("content", ""),
                        }
                    )
            if texts:
                converted.append({"role": "user", "content": "\n".join(texts)})
        return converted

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        # Retries are handled here so the SDK's own retry loop is disabled.
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers=headers,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(_RETRYABLE_ERRORS),
        )

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("AI prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("AI prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def _encode_arguments(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value if value is not None else {}, ensure_ascii=False)
