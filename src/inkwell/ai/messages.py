"""Conversation messages in the block-structured shape exchanged with the model."""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Union

from ..documents.models import utc_timestamp

__all__ = [
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    "Message",
    "ChatHistory",
    "block_from_dict",
]

Role = Literal["user", "assistant"]


@dataclass(slots=True, frozen=True)
class TextBlock:
    text: str
    type: Literal["text"] = field(default="text", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(slots=True, frozen=True)
class ToolUseBlock:
    """A model-requested tool invocation.

    ``input`` is normally a mapping. It keeps whatever the model sent, so a
    malformed argument payload survives until validation rejects it.
    """

    id: str
    name: str
    input: Any = field(default_factory=dict)
    type: Literal["tool_use"] = field(default="tool_use", init=False)

    def to_dict(self) -> dict[str, Any]:
        payload = dict(self.input) if isinstance(self.input, Mapping) else self.input
        return {"type": self.type, "id": self.id, "name": self.name, "input": payload}


@dataclass(slots=True, frozen=True)
class ToolResultBlock:
    """Outcome of one tool call, correlated to its :class:`ToolUseBlock` by id."""

    tool_use_id: str
    content: str
    is_error: bool = False
    type: Literal["tool_result"] = field(default="tool_result", init=False)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type,
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            payload["is_error"] = True
        return payload

    def payload(self) -> Any:
        """Decode ``content`` as JSON, falling back to the raw string."""

        try:
            return json.loads(self.content)
        except (TypeError, ValueError):
            return self.content


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


def block_from_dict(payload: Mapping[str, Any]) -> ContentBlock:
    kind = payload.get("type")
    if kind == "text":
        return TextBlock(text=str(payload.get("text", "")))
    if kind == "tool_use":
        return ToolUseBlock(id=str(payload["id"]), name=str(payload["name"]), input=payload.get("input", {}))
    if kind == "tool_result":
        return ToolResultBlock(
            tool_use_id=str(payload["tool_use_id"]),
            content=str(payload.get("content", "")),
            is_error=bool(payload.get("is_error", False)),
        )
    raise ValueError(f"Unknown content block type: {kind!r}")


@dataclass(slots=True, frozen=True)
class Message:
    role: Role
    content: str | tuple[ContentBlock, ...] = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unsupported role: {self.role!r}")
        if not isinstance(self.content, str):
            object.__setattr__(self, "content", tuple(self.content))

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        if isinstance(self.content, str):
            return (TextBlock(self.content),) if self.content else ()
        return self.content

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.blocks if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> tuple[ToolUseBlock, ...]:
        return tuple(block for block in self.blocks if isinstance(block, ToolUseBlock))

    @property
    def tool_results(self) -> tuple[ToolResultBlock, ...]:
        return tuple(block for block in self.blocks if isinstance(block, ToolResultBlock))

    def is_empty(self) -> bool:
        if isinstance(self.content, str):
            return not self.content.strip()
        return not any(
            not isinstance(block, TextBlock) or block.text.strip() for block in self.content
        )

    def to_api(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [block.to_dict() for block in self.content]}


class ChatHistory:
    """Ordered conversation owned by a single agent loop."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = list(messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def add(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def add_user(self, text: str) -> Message:
        return self.add(Message(role="user", content=text))

    def add_placeholder(self) -> Message:
        return self.add(Message(role="assistant", content=""))

    def get(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def update(self, message_id: str, **changes: Any) -> Message:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                updated = replace(message, **changes)
                self._messages[index] = updated
                return updated
        raise KeyError(message_id)

    def remove(self, message_id: str) -> bool:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index]
                return True
        return False

    def add_tool_results(self, results: Sequence[ToolResultBlock]) -> Message:
        return self.add(Message(role="user", content=tuple(results)))

    def clear(self) -> None:
        self._messages.clear()

    def to_api_messages(self, *, exclude_id: str | None = None) -> list[dict[str, Any]]:
        """Return the wire-format history without empty turns or ``exclude_id``."""

        return [
            message.to_api()
            for message in self._messages
            if message.id != exclude_id and not message.is_empty()
        ]
