"""Accept/reject flow for edit suggestions held by a document store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..documents.store import DocumentStore
from .patches import PatchApplyError, apply_multiple_patches, rebase_suggestions

__all__ = ["accept_suggestions", "reject_suggestions"]

LOGGER = logging.getLogger(__name__)


def accept_suggestions(store: DocumentStore, suggestion_ids: Iterable[str]) -> str:
    """Apply the pending suggestions named by ``suggestion_ids`` and persist the result.

    Either every requested suggestion lands or the store is left untouched.
    Suggestions left pending are moved to the new offsets; any that overlap
    an accepted span are dropped.
    """

    ids = list(dict.fromkeys(suggestion_ids))
    pending = store.pending_suggestions()
    pending_ids = {item.id for item in pending}
    missing = [item for item in ids if item not in pending_ids]
    if missing:
        raise PatchApplyError(
            "Suggestions are not pending: " + ", ".join(missing),
            reason="unknown_suggestion",
        )
    updated = apply_multiple_patches(store.get_content(), pending, ids)
    wanted = set(ids)
    applied = [item for item in pending if item.id in wanted]
    rebased, invalidated = rebase_suggestions((item for item in pending if item.id not in wanted), applied)
    store.set_content(updated)
    store.mark_suggestions(accepted=ids, rejected=invalidated)
    store.replace_suggestions(rebased)
    if invalidated:
        LOGGER.info("Dropped %d suggestion(s) overlapping accepted edits", len(invalidated))
    LOGGER.info("Accepted %d suggestion(s)", len(ids))
    return updated


def reject_suggestions(store: DocumentStore, suggestion_ids: Iterable[str]) -> None:
    ids = list(suggestion_ids)
    store.mark_suggestions(accepted=(), rejected=ids)
    LOGGER.info("Rejected %d suggestion(s)", len(ids))
