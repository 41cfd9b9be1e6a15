"""Small text helpers shared by the diff, conflict and prompt modules."""

from __future__ import annotations

import re

__all__ = [
    "ELLIPSIS",
    "count_words",
    "truncate",
    "truncate_words",
    "normalize_whitespace",
    "split_lines",
]

ELLIPSIS = "..."
_WHITESPACE_RE = re.compile(r"\s+")
_LINE_BREAK_RE = re.compile(r"\r?\n")


def count_words(text: str | None) -> int:
    """Return the number of whitespace separated words in ``text``."""

    stripped = (text or "").strip()
    if not stripped:
        return 0
    return len(_WHITESPACE_RE.split(stripped))


def normalize_whitespace(text: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` or ``\\r\\n`` without dropping a trailing empty line."""

    return _LINE_BREAK_RE.split(text)


def truncate(text: str, max_length: int, suffix: str = ELLIPSIS) -> str:
    """Hard-truncate ``text`` so the result including ``suffix`` fits ``max_length``."""

    if len(text) <= max_length:
        return text
    keep = max(0, max_length - len(suffix))
    return text[:keep] + suffix


def truncate_words(text: str, max_length: int, suffix: str = ELLIPSIS) -> str:
    """Truncate ``text`` to at most ``max_length`` characters on a word boundary.

    The ``suffix`` is appended only when something was cut. A text without any
    whitespace inside the window is cut mid-word since there is no boundary
    to fall back to.
    """

    if max_length <= 0:
        return suffix if text else ""
    if len(text) <= max_length:
        return text
    window = text[:max_length]
    if not text[max_length].isspace():
        boundary = max(window.rfind(" "), window.rfind("\n"), window.rfind("\t"))
        if boundary > 0:
            window = window[:boundary]
    return window.rstrip() + suffix
