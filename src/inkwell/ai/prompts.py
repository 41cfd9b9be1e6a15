"""System prompt assembly for the writing assistant.

The prompt is rebuilt on every loop iteration from the live document state
so the model always sees the current stage, the locked concept and outline,
a bounded preview of the draft, and whatever the user changed by hand since
the model last looked.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..documents.conflicts import detect_outline_draft_conflicts, format_conflicts_for_prompt
from ..documents.diff import (
    DEFAULT_DIFF_CHAR_LIMIT,
    StageChange,
    diff_content,
    diff_outline,
    format_changes_for_prompt,
)
from ..documents.models import ConceptSnapshot, DocumentSnapshot, OutlineSection, Stage
from ..documents.store import DocumentStore
from ..utils.text import count_words, truncate_words

__all__ = [
    "DEFAULT_PREVIEW_CHAR_LIMIT",
    "PromptContextBuilder",
    "stage_prompt",
    "tool_guidance",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHAR_LIMIT = 2_000
_SEPARATOR = "\n\n---\n\n"


def _core_section() -> str:
    """Voice and editing principles shared by every stage."""
    return """# Writing Assistant

You help people write anything: blog posts, memos, journal entries, essays, letters, documentation.
Guide the writer through their process while preserving their voice. Adapt to the kind of piece;
a journal entry needs a different touch than a professional memo.

Editing philosophy: light touch, high standards. Fix what is broken, tighten what is loose, and ask
about what is unclear. Never overwrite the writer's voice or add ideas they did not express.

## Tone
- Be warm but direct; praise specifically, never generically.
- Keep momentum. Make reasonable assumptions and offer to adjust instead of asking permission.
- Trust the writer's instincts, especially when they deviate from the plan.

## Tracked changes
When returning edited text mark deletions as ~~strikethrough~~, additions as **bold**, and
queries as [comments in brackets]."""


_STAGE_SECTIONS: dict[Stage, str] = {
    Stage.CONCEPT: """## Current Phase: CONCEPT

Help the writer discover what they are really trying to say. Start with "What's the idea?" and
listen for the core argument, audience, angle and hook. One clarifying question is usually enough;
after two, propose something concrete.

When you have enough, propose a concept spec (working title, core idea in one sentence, audience,
tone), save it with update_concept and move on to the outline. Every piece goes through
concept, outline, draft and edits; scale the depth to the piece.""",
    Stage.OUTLINE: """## Current Phase: OUTLINE

Turn the concept into a structure that fits the piece: sections for an essay, purpose/background/
recommendation for a memo, a loose sequence for a journal entry. Make every change the writer asks
for (add, remove, reorder, retitle).

When the structure is solid, save it with update_outline and present the first section's prompt.
Never skip the outline; even short pieces benefit from one.""",
    Stage.DRAFT: """## Current Phase: DRAFTING

Work through the outline one section at a time: present the section prompt, take the writer's
dictation, edit it lightly with tracked changes, then integrate approved text with update_document.
If the writer dictates several sections at once, edit them as one piece and continue from the
next incomplete section. If they ask you to write a section yourself, do it using the concept and
outline as your guide.

When the draft is complete, use update_stage to move to edits.""",
    Stage.EDITS: """## Current Phase: EDITING

Run full-draft revision passes, each with one focus: coherence (flow, transitions), style (cut
filler, strengthen verbs), critical read (unsupported claims, thin sections) and strengths (what
works and deserves prominence). If the writer does not pick one, run them all together.

Present the draft with tracked changes plus a short summary, and let the writer accept or reject.
When they are satisfied, use update_stage to move to polish.""",
    Stage.POLISH: """## Current Phase: FINAL POLISH

Check that the title promises what the piece delivers, the opening earns the next paragraph and the
ending lands. Present the clean final version with a word count and reading time estimate. Return
to editing if the writer wants more changes.""",
}


def stage_prompt(stage: Stage | str) -> str:
    """Return the instruction block for ``stage``."""
    resolved = Stage.coerce(stage)
    return f"{_core_section()}{_SEPARATOR}{_STAGE_SECTIONS[resolved]}"


def tool_guidance() -> str:
    """Tool usage instructions appended to every prompt."""
    return """## Available Tools

1. **read_document** - current content, stage and word count
2. **update_document** - "replace" all content, "insert" at a character position, or "append"
3. **update_concept** - lock title, coreArgument, audience and tone
4. **update_outline** - save the ordered sections (id, title, description, estimatedWords)
5. **update_stage** - move between concept, outline, draft, edits and polish
6. **add_edit_suggestion** - record one proposed change (scope, before, after, rationale)

Use tools proactively to save the writer's progress and do not ask permission first. When the
writer confirms a concept or outline, save it immediately.

## Presenting edit suggestions

The writer only sees your text response, never the tool calls. Show every edit in your reply
first (inline for a handful, grouped by kind with examples for many), then record each one with
add_edit_suggestion. If a tool returns an error, read it, fix the input and try again."""


# ----------------------------------------------------------------------
# Context blocks
# ----------------------------------------------------------------------
def _concept_block(concept: ConceptSnapshot) -> str:
    return "\n".join(
        [
            "## Current Concept (Locked)",
            "",
            f"- **Title**: {concept.title}",
            f"- **Core Argument**: {concept.core_argument}",
            f"- **Audience**: {concept.audience}",
            f"- **Tone**: {concept.tone}",
        ]
    )


def _outline_block(outline: Sequence[OutlineSection]) -> str:
    lines = ["## Current Outline (Locked)", ""]
    for index, section in enumerate(outline, start=1):
        words = f" (~{section.estimated_words} words)" if section.estimated_words else ""
        lines.append(f"{index}. **{section.title}**{words}")
        if section.description:
            lines.append(f"   {section.description}")
    return "\n".join(lines)


def _preview_block(preview: str, word_count: int | None) -> str:
    suffix = f" ({word_count} words total)" if word_count else ""
    return f"## Document Preview{suffix}\n\n```\n{preview}\n```"


@dataclass(slots=True)
class PromptContextBuilder:
    """Compose the system prompt from document state.

    Blocks appear in a fixed order and absent blocks are dropped entirely:
    stage instructions, concept, outline, preview, recent user changes,
    outline/draft conflicts, tool guidance.
    """

    preview_char_limit: int = DEFAULT_PREVIEW_CHAR_LIMIT
    diff_char_limit: int = DEFAULT_DIFF_CHAR_LIMIT

    def build(
        self,
        stage: Stage | str,
        concept: ConceptSnapshot | None = None,
        outline: Sequence[OutlineSection] | None = None,
        document_preview: str = "",
        word_count: int | None = None,
        last_seen: DocumentSnapshot | None = None,
    ) -> str:
        resolved = Stage.coerce(stage)
        content = document_preview or ""
        current_outline = tuple(outline) if outline is not None else None

        blocks = [stage_prompt(resolved)]
        if concept is not None:
            blocks.append(_concept_block(concept))
        if current_outline:
            blocks.append(_outline_block(current_outline))
        if content.strip():
            preview = truncate_words(content, self.preview_char_limit)
            blocks.append(_preview_block(preview, word_count))

        if last_seen is not None:
            current = DocumentSnapshot(content=content, outline=current_outline, stage=resolved)
            blocks.extend(self._change_blocks(last_seen, current))

        blocks.append(tool_guidance())
        prompt = _SEPARATOR.join(block.strip() for block in blocks)
        LOGGER.debug("Built system prompt (%d chars, %d blocks)", len(prompt), len(blocks))
        return prompt

    def build_from_store(self, store: DocumentStore) -> str:
        content = store.get_content()
        return self.build(
            store.get_stage(),
            concept=store.get_concept(),
            outline=store.get_outline(),
            document_preview=content,
            word_count=count_words(content),
            last_seen=store.last_seen(),
        )

    def _change_blocks(self, last_seen: DocumentSnapshot, current: DocumentSnapshot) -> list[str]:
        content_diff = diff_content(last_seen.content, current.content, char_limit=self.diff_char_limit)
        outline_diff = diff_outline(last_seen.outline, current.outline)
        stage_change = None
        if last_seen.stage != current.stage:
            stage_change = StageChange(previous=last_seen.stage, current=current.stage)

        blocks: list[str] = []
        changes = format_changes_for_prompt(content_diff, outline_diff, stage_change)
        if changes:
            blocks.append(changes)
        if outline_diff.has_changes:
            report = detect_outline_draft_conflicts(last_seen.outline, current.outline, current.content)
            if report.has_conflicts:
                LOGGER.info("Outline/draft conflicts detected: %s", report.summary)
                blocks.append(format_conflicts_for_prompt(report))
        return blocks
