"""Tests for the OpenAI-compatible AI client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Iterable, cast

import httpx
import pytest
from openai import APIConnectionError, AsyncOpenAI, AuthenticationError

from inkwell.ai.client import AIClient, ClientSettings
from inkwell.ai.tools import TOOL_SCHEMAS, ToolSpec
from inkwell.ai.transport import ChunkEvent, ErrorEvent, StopEvent, ToolUseEvent

_REQUEST = httpx.Request("POST", "http://local/chat/completions")


def _delta(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="content.delta", delta=text)


def _tool_fragment(index: int, *, id: str | None = None, name: str | None = None, arguments: str | None = None) -> Any:
    return SimpleNamespace(index=index, id=id, function=SimpleNamespace(name=name, arguments=arguments))


def _chunk(*, tool_calls: list[Any] | None = None, finish_reason: str | None = None) -> SimpleNamespace:
    choice = SimpleNamespace(delta=SimpleNamespace(content=None, tool_calls=tool_calls), finish_reason=finish_reason)
    return SimpleNamespace(type="chunk", chunk=SimpleNamespace(choices=[choice]))


class _FakeStream:
    def __init__(self, events: Iterable[Any]):
        self._iterator = iter(list(events))

    def __aiter__(self) -> "_FakeStream":
        return self

    async def __anext__(self) -> Any:
        try:
            event = next(self._iterator)
        except StopIteration as exc:
            raise StopAsyncIteration from exc
        if isinstance(event, BaseException):
            raise event
        return event


class _FakeStreamContext:
    def __init__(self, events: Iterable[Any]):
        self._events = list(events)

    async def __aenter__(self) -> _FakeStream:
        return _FakeStream(self._events)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _FakeCompletions:
    """Replays one script per call; an exception script is raised on open."""

    def __init__(self, *scripts: Any):
        self._scripts = list(scripts)
        self.calls: list[dict[str, Any]] = []

    def stream(self, **kwargs: Any) -> _FakeStreamContext:
        self.calls.append(kwargs)
        script = self._scripts[min(len(self.calls) - 1, len(self._scripts) - 1)]
        if isinstance(script, BaseException):
            raise script
        return _FakeStreamContext(script)


def _make_client(*scripts: Any, **settings: Any) -> tuple[AIClient, _FakeCompletions]:
    completions = _FakeCompletions(*scripts)
    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    options: dict[str, Any] = {"base_url": "http://local", "api_key": "test", "model": "gpt-4o-mini"}
    options.update(settings)
    client = AIClient(ClientSettings(**options), client=cast(AsyncOpenAI, fake_client))
    return client, completions


async def _collect(client: AIClient, messages: list[dict[str, Any]] | None = None, tools: list[ToolSpec] | None = None):
    return [
        event
        async for event in client.stream(
            messages or [{"role": "user", "content": "Hi"}],
            system="You are helpful.",
            tools=tools or [],
        )
    ]


@pytest.mark.asyncio
async def test_stream_normalizes_text_deltas_and_finish_reason() -> None:
    client, completions = _make_client([_delta("Hel"), _delta("lo"), _chunk(finish_reason="stop")])

    events = await _collect(client)

    assert events == [
        ChunkEvent(text="Hel"),
        ChunkEvent(text="lo"),
        ChunkEvent(text="", done=True),
        StopEvent(stop_reason="end_turn"),
    ]
    payload = completions.calls[0]
    assert payload["model"] == "gpt-4o-mini"
    assert payload["messages"][0] == {"role": "system", "content": "You are helpful."}
    assert payload["messages"][1] == {"role": "user", "content": "Hi"}
    assert "tools" not in payload


@pytest.mark.asyncio
async def test_stream_assembles_tool_call_fragments_in_index_order() -> None:
    client, completions = _make_client(
        [
            _chunk(tool_calls=[_tool_fragment(1, id="call_b", name="update_stage", arguments='{"stage": ')]),
            _chunk(tool_calls=[_tool_fragment(0, id="call_a", name="read_document", arguments="")]),
            _chunk(tool_calls=[_tool_fragment(1, arguments='"edits"}')]),
            _chunk(finish_reason="tool_calls"),
        ]
    )
    spec = ToolSpec(name="read_document", description="Read", parameters=TOOL_SCHEMAS["read_document"])

    events = await _collect(client, tools=[spec])

    assert events == [
        ToolUseEvent(id="call_a", name="read_document", input={}),
        ToolUseEvent(id="call_b", name="update_stage", input={"stage": "edits"}),
        ChunkEvent(text="", done=True),
        StopEvent(stop_reason="tool_use"),
    ]
    assert completions.calls[0]["tools"][0]["function"]["name"] == "read_document"


@pytest.mark.asyncio
async def test_malformed_tool_arguments_are_passed_through_raw() -> None:
    client, _ = _make_client(
        [
            _chunk(tool_calls=[_tool_fragment(0, id="c", name="update_stage", arguments="{not json")]),
            _chunk(finish_reason="tool_calls"),
        ]
    )

    events = await _collect(client)

    assert events[0] == ToolUseEvent(id="c", name="update_stage", input="{not json")


@pytest.mark.asyncio
async def test_stop_finish_with_tool_calls_maps_to_tool_use() -> None:
    client, _ = _make_client(
        [
            _chunk(tool_calls=[_tool_fragment(0, id="c", name="read_document", arguments="{}")]),
            _chunk(finish_reason="stop"),
        ]
    )

    events = await _collect(client)

    assert events[-1] == StopEvent(stop_reason="tool_use")


@pytest.mark.asyncio
async def test_length_finish_reason_maps_to_max_tokens() -> None:
    client, _ = _make_client([_delta("cut"), _chunk(finish_reason="length")])

    events = await _collect(client)

    assert events[-1] == StopEvent(stop_reason="max_tokens")


@pytest.mark.asyncio
async def test_stream_without_finish_reason_emits_no_stop_event() -> None:
    client, _ = _make_client([_delta("dangling")])

    events = await _collect(client)

    assert events == [ChunkEvent(text="dangling")]


@pytest.mark.asyncio
async def test_authentication_failure_becomes_error_event() -> None:
    response = httpx.Response(401, request=_REQUEST)
    error = AuthenticationError("Invalid API key", response=response, body=None)
    client, completions = _make_client(error, max_retries=3, retry_min_seconds=0)

    events = await _collect(client)

    assert events == [ErrorEvent(message="Invalid API key", status_code=401)]
    assert len(completions.calls) == 1


@pytest.mark.asyncio
async def test_connection_failure_before_output_is_retried() -> None:
    client, completions = _make_client(
        APIConnectionError(request=_REQUEST),
        [_delta("ok"), _chunk(finish_reason="stop")],
        max_retries=2,
        retry_min_seconds=0,
    )

    events = await _collect(client)

    assert len(completions.calls) == 2
    assert events[0] == ChunkEvent(text="ok")
    assert events[-1] == StopEvent(stop_reason="end_turn")


@pytest.mark.asyncio
async def test_connection_failure_after_output_is_not_retried() -> None:
    client, completions = _make_client(
        [_delta("half"), APIConnectionError(request=_REQUEST)],
        max_retries=3,
        retry_min_seconds=0,
    )

    events = await _collect(client)

    assert len(completions.calls) == 1
    assert events[0] == ChunkEvent(text="half")
    assert isinstance(events[1], ErrorEvent)
    assert len(events) == 2


@pytest.mark.asyncio
async def test_stream_requires_messages() -> None:
    client, _ = _make_client([])

    generator = client.stream([], system="s", tools=[])
    with pytest.raises(ValueError):
        await generator.__anext__()


def test_convert_messages_maps_blocks_to_chat_messages() -> None:
    converted = AIClient.convert_messages(
        [
            {"role": "user", "content": "Fix my intro"},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Reading first."},
                    {"type": "tool_use", "id": "call_1", "name": "read_document", "input": {}},
                ],
            },
            {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": "call_1", "content": '{"success": true}'}],
            },
        ]
    )

    assert converted == [
        {"role": "user", "content": "Fix my intro"},
        {
            "role": "assistant",
            "content": "Reading first.",
            "tool_calls": [
                {"id": "call_1", "type": "function", "function": {"name": "read_document", "arguments": "{}"}}
            ],
        },
        {"role": "tool", "tool_call_id": "call_1", "content": '{"success": true}'},
    ]


@pytest.mark.asyncio
async def test_debug_logging_captures_prompt_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _make_client([_chunk(finish_reason="stop")], debug_logging=True)
    captured: dict[str, Any] = {}

    def _capture(payload: Any) -> None:
        captured["payload"] = payload

    monkeypatch.setattr(client, "_log_prompt_payload", _capture)

    await _collect(client, messages=[{"role": "user", "content": "Hello"}])

    assert captured["payload"]["messages"][1]["content"] == "Hello"


@pytest.mark.asyncio
async def test_aclose_closes_underlying_client() -> None:
    class _StubAsyncOpenAI:
        def __init__(self) -> None:
            self.closed = False

        async def close(self) -> None:
            self.closed = True

    stub = _StubAsyncOpenAI()
    client = AIClient(
        ClientSettings(base_url="http://local", api_key="test", model="stub-model"),
        client=cast(AsyncOpenAI, stub),
    )

    await client.aclose()

    assert stub.closed is True
