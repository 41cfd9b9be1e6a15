"""Immutable value types describing a document and its planning metadata."""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

__all__ = [
    "Stage",
    "TextRange",
    "OutlineSection",
    "OutlineVersion",
    "ConceptSnapshot",
    "DocumentSnapshot",
    "SuggestionType",
    "EditSuggestion",
    "utc_timestamp",
]


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


class Stage(str, Enum):
    """Writing stages in their conventional order."""

    CONCEPT = "concept"
    OUTLINE = "outline"
    DRAFT = "draft"
    EDITS = "edits"
    POLISH = "polish"

    @classmethod
    def ordered(cls) -> tuple["Stage", ...]:
        return (cls.CONCEPT, cls.OUTLINE, cls.DRAFT, cls.EDITS, cls.POLISH)

    @classmethod
    def coerce(cls, value: "Stage | str") -> "Stage":
        if isinstance(value, Stage):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(stage.value for stage in cls.ordered())
            raise ValueError(f"Unknown stage {value!r}; expected one of {allowed}") from exc

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class TextRange(Sequence[int]):
    """Half-open ``[start, end)`` span of character offsets into document content."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            raise ValueError(f"TextRange end ({end}) precedes start ({start})")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"TextRange {label} must be an integer")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            raise ValueError(f"TextRange {label} must be non-negative")
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:  # type: ignore[override]
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a single position."""

        return self.start == self.end

    def shifted(self, delta: int) -> "TextRange":
        return TextRange(self.start + delta, self.end + delta)

    def overlaps(self, other: "TextRange") -> bool:
        """Return ``True`` when both spans share at least one position.

        Carets only overlap a span that strictly contains them, so an insert
        at the boundary of a replacement does not collide with it.
        """

        if self.is_caret and other.is_caret:
            return False
        return self.start < other.end and other.start < self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_value(cls, value: "TextRange | Mapping[str, Any] | Sequence[int]") -> "TextRange":
        if isinstance(value, TextRange):
            return value
        if isinstance(value, Mapping):
            return cls(value.get("start"), value.get("end"))  # type: ignore[arg-type]
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
            return cls(value[0], value[1])
        raise ValueError("Range must be a mapping with start/end or a two-item sequence")


@dataclass(slots=True, frozen=True)
class OutlineSection:
    """A single outline entry; identity is its ``id``, never its position."""

    id: str
    title: str
    description: str = ""
    estimated_words: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "estimatedWords": self.estimated_words,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "OutlineSection":
        words = payload.get("estimatedWords", payload.get("estimated_words"))
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            description=str(payload.get("description") or ""),
            estimated_words=int(words) if words is not None else None,
        )


@dataclass(slots=True, frozen=True)
class OutlineVersion:
    """Entry in the append-only outline history."""

    sections: tuple[OutlineSection, ...]
    created_at: str = field(default_factory=utc_timestamp)


@dataclass(slots=True, frozen=True)
class ConceptSnapshot:
    """The locked creative direction of a piece."""

    title: str
    core_argument: str
    audience: str
    tone: str
    updated_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "coreArgument": self.core_argument,
            "audience": self.audience,
            "tone": self.tone,
            "updatedAt": self.updated_at,
        }


@dataclass(slots=True, frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of content, outline and stage used as a diff baseline."""

    content: str
    outline: tuple[OutlineSection, ...] | None
    stage: Stage

    def __post_init__(self) -> None:
        if self.outline is not None and not isinstance(self.outline, tuple):
            object.__setattr__(self, "outline", tuple(self.outline))
        object.__setattr__(self, "stage", Stage.coerce(self.stage))


class SuggestionType(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class EditSuggestion:
    """A proposed edit expressed in content coordinates at proposal time.

    Offsets go stale as soon as any other accepted edit shifts the content;
    :func:`inkwell.editor.patches.apply_multiple_patches` accounts for that.
    """

    type: SuggestionType
    range: TextRange
    suggested_text: str = ""
    original_text: str = ""
    reasoning: str = ""
    scope: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    accepted: bool = False
    created_at: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", SuggestionType(self.type))
        object.__setattr__(self, "range", TextRange.from_value(self.range))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "range": self.range.to_dict(),
            "originalText": self.original_text,
            "suggestedText": self.suggested_text,
            "reasoning": self.reasoning,
            "scope": self.scope,
            "accepted": self.accepted,
            "createdAt": self.created_at,
        }
