"""Patch application and the suggestion review flow."""

from .patches import (
    PatchApplyError,
    PatchConflictError,
    apply_multiple_patches,
    apply_patch,
    find_conflicts,
    invert_suggestion,
    rebase_suggestions,
)
from .review import accept_suggestions, reject_suggestions

__all__ = [
    "PatchApplyError",
    "PatchConflictError",
    "accept_suggestions",
    "apply_multiple_patches",
    "apply_patch",
    "find_conflicts",
    "invert_suggestion",
    "rebase_suggestions",
    "reject_suggestions",
]
