"""Document state, change tracking and outline/draft conflict detection."""

from .conflicts import ConflictDetail, ConflictKind, ConflictReport, detect_outline_draft_conflicts
from .diff import ContentDiff, OutlineDiff, StageChange, diff_content, diff_outline, format_changes_for_prompt
from .models import (
    ConceptSnapshot,
    DocumentSnapshot,
    EditSuggestion,
    OutlineSection,
    Stage,
    SuggestionType,
    TextRange,
)
from .store import ChangesSinceLastSeen, DocumentStore, InMemoryDocumentStore

__all__ = [
    "ChangesSinceLastSeen",
    "ConceptSnapshot",
    "ConflictDetail",
    "ConflictKind",
    "ConflictReport",
    "ContentDiff",
    "DocumentSnapshot",
    "DocumentStore",
    "EditSuggestion",
    "InMemoryDocumentStore",
    "OutlineDiff",
    "OutlineSection",
    "Stage",
    "StageChange",
    "SuggestionType",
    "TextRange",
    "detect_outline_draft_conflicts",
    "diff_content",
    "diff_outline",
    "format_changes_for_prompt",
]
