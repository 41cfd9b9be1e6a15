"""Document store contract and the in-memory implementation used by the core.

The orchestration core never keeps its own copy of document state: tools and
the agent loop read and mutate it through :class:`DocumentStore`. Persistence,
autosave and editor rendering live behind this interface and are not part of
this package.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from .models import (
    ConceptSnapshot,
    DocumentSnapshot,
    EditSuggestion,
    OutlineSection,
    OutlineVersion,
    Stage,
)

__all__ = [
    "DocumentStore",
    "ChangesSinceLastSeen",
    "InMemoryDocumentStore",
    "compute_changes",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChangesSinceLastSeen:
    """Difference between the current state and what the model last saw."""

    previous: DocumentSnapshot
    current: DocumentSnapshot

    @property
    def content_changed(self) -> bool:
        return self.previous.content != self.current.content

    @property
    def outline_changed(self) -> bool:
        return self.previous.outline != self.current.outline

    @property
    def stage_changed(self) -> bool:
        return self.previous.stage != self.current.stage

    @property
    def has_changes(self) -> bool:
        return self.content_changed or self.outline_changed or self.stage_changed


def compute_changes(
    last_seen: DocumentSnapshot | None,
    current: DocumentSnapshot,
) -> ChangesSinceLastSeen | None:
    """Return the change set, or ``None`` when nothing changed or no baseline exists."""

    if last_seen is None:
        return None
    changes = ChangesSinceLastSeen(previous=last_seen, current=current)
    return changes if changes.has_changes else None


@runtime_checkable
class DocumentStore(Protocol):
    """Accessors and mutators the core relies on."""

    def get_content(self) -> str: ...

    def set_content(self, content: str) -> None: ...

    def get_outline(self) -> tuple[OutlineSection, ...] | None: ...

    def set_outline(self, sections: Sequence[OutlineSection]) -> None: ...

    def get_concept(self) -> ConceptSnapshot | None: ...

    def set_concept(self, concept: ConceptSnapshot) -> None: ...

    def get_stage(self) -> Stage: ...

    def set_stage(self, stage: Stage) -> None: ...

    def snapshot(self) -> DocumentSnapshot: ...

    def last_seen(self) -> DocumentSnapshot | None: ...

    def mark_seen(self) -> DocumentSnapshot: ...

    def changes_since_last_seen(self) -> ChangesSinceLastSeen | None: ...

    def add_suggestion(self, suggestion: EditSuggestion) -> None: ...

    def pending_suggestions(self) -> tuple[EditSuggestion, ...]: ...

    def mark_suggestions(self, accepted: Iterable[str], rejected: Iterable[str] = ()) -> None: ...

    def replace_suggestions(self, suggestions: Iterable[EditSuggestion]) -> None: ...


class InMemoryDocumentStore:
    """Thread-safe in-memory :class:`DocumentStore`.

    Every mutation happens under a re-entrant lock. Under a single asyncio
    loop the lock is uncontended; callers driving tools from worker threads
    get the same serialisation without extra work.
    """

    def __init__(
        self,
        content: str = "",
        *,
        outline: Sequence[OutlineSection] | None = None,
        concept: ConceptSnapshot | None = None,
        stage: Stage | str = Stage.CONCEPT,
        filename: str | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._content = content
        self._outline: tuple[OutlineSection, ...] | None = tuple(outline) if outline is not None else None
        self._concept = concept
        self._stage = Stage.coerce(stage)
        self._concept_history: list[ConceptSnapshot] = [concept] if concept is not None else []
        self._outline_history: list[OutlineVersion] = (
            [OutlineVersion(sections=self._outline)] if self._outline is not None else []
        )
        self._suggestions: list[EditSuggestion] = []
        self._last_seen: DocumentSnapshot | None = None
        self.filename = filename

    # ------------------------------------------------------------------
    # Content / outline / concept / stage
    # ------------------------------------------------------------------
    def get_content(self) -> str:
        with self._lock:
            return self._content

    def set_content(self, content: str) -> None:
        if not isinstance(content, str):
            raise TypeError("content must be a string")
        with self._lock:
            self._content = content

    def get_outline(self) -> tuple[OutlineSection, ...] | None:
        with self._lock:
            return self._outline

    def set_outline(self, sections: Sequence[OutlineSection]) -> None:
        frozen = tuple(sections)
        with self._lock:
            self._outline = frozen
            self._outline_history.append(OutlineVersion(sections=frozen))

    def get_concept(self) -> ConceptSnapshot | None:
        with self._lock:
            return self._concept

    def set_concept(self, concept: ConceptSnapshot) -> None:
        with self._lock:
            self._concept = concept
            self._concept_history.append(concept)

    def get_stage(self) -> Stage:
        with self._lock:
            return self._stage

    def set_stage(self, stage: Stage | str) -> None:
        resolved = Stage.coerce(stage)
        with self._lock:
            self._stage = resolved

    @property
    def concept_history(self) -> tuple[ConceptSnapshot, ...]:
        with self._lock:
            return tuple(self._concept_history)

    @property
    def outline_history(self) -> tuple[OutlineVersion, ...]:
        with self._lock:
            return tuple(self._outline_history)

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------
    def snapshot(self) -> DocumentSnapshot:
        with self._lock:
            return DocumentSnapshot(content=self._content, outline=self._outline, stage=self._stage)

    def last_seen(self) -> DocumentSnapshot | None:
        with self._lock:
            return self._last_seen

    def mark_seen(self) -> DocumentSnapshot:
        """Record the current state as what the model has now seen."""

        with self._lock:
            self._last_seen = self.snapshot()
            LOGGER.debug(
                "Recorded last-seen snapshot (%d chars, stage=%s)",
                len(self._last_seen.content),
                self._last_seen.stage,
            )
            return self._last_seen

    def changes_since_last_seen(self) -> ChangesSinceLastSeen | None:
        with self._lock:
            return compute_changes(self._last_seen, self.snapshot())

    # ------------------------------------------------------------------
    # Edit suggestions
    # ------------------------------------------------------------------
    def add_suggestion(self, suggestion: EditSuggestion) -> None:
        with self._lock:
            if any(existing.id == suggestion.id for existing in self._suggestions):
                raise ValueError(f"Duplicate suggestion id: {suggestion.id}")
            self._suggestions.append(suggestion)

    def suggestions(self) -> tuple[EditSuggestion, ...]:
        with self._lock:
            return tuple(self._suggestions)

    def pending_suggestions(self) -> tuple[EditSuggestion, ...]:
        with self._lock:
            return tuple(item for item in self._suggestions if not item.accepted)

    def mark_suggestions(self, accepted: Iterable[str], rejected: Iterable[str] = ()) -> None:
        """Flag ``accepted`` suggestions as applied and drop ``rejected`` ones."""

        accepted_ids = set(accepted)
        rejected_ids = set(rejected)
        with self._lock:
            updated: list[EditSuggestion] = []
            for item in self._suggestions:
                if item.id in rejected_ids:
                    continue
                if item.id in accepted_ids:
                    item = replace(item, accepted=True)
                updated.append(item)
            self._suggestions = updated

    def replace_suggestions(self, suggestions: Iterable[EditSuggestion]) -> None:
        """Swap stored suggestions for the given records with matching ids."""

        by_id = {item.id: item for item in suggestions}
        with self._lock:
            self._suggestions = [by_id.get(item.id, item) for item in self._suggestions]
