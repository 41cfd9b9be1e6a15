"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from inkwell.documents import InMemoryDocumentStore, OutlineSection, Stage


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore("Hello world", stage=Stage.DRAFT, filename="essay.md")


@pytest.fixture
def outline() -> tuple[OutlineSection, ...]:
    return (
        OutlineSection(id="intro", title="Introduction", description="Set up the problem", estimated_words=150),
        OutlineSection(id="body", title="The Argument", description="Make the case", estimated_words=600),
        OutlineSection(id="outro", title="Conclusion", description="Land the point", estimated_words=120),
    )
