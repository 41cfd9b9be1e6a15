"""Tests for text helpers."""

from __future__ import annotations

from inkwell.utils.text import count_words, normalize_whitespace, split_lines, truncate, truncate_words


def test_count_words() -> None:
    assert count_words("") == 0
    assert count_words(None) == 0
    assert count_words("  one\ttwo\nthree  ") == 3


def test_split_lines_handles_crlf() -> None:
    assert split_lines("a\r\nb\nc\n") == ["a", "b", "c", ""]


def test_truncate_keeps_within_limit() -> None:
    assert truncate("abcdef", 10) == "abcdef"
    assert truncate("abcdefghij", 6) == "abc..."


def test_truncate_words_cuts_on_boundary() -> None:
    assert truncate_words("hello brave new world", 13) == "hello brave..."
    assert truncate_words("hello brave", 11) == "hello brave"
    assert truncate_words("abcdefghijkl", 5) == "abcde..."


def test_normalize_whitespace() -> None:
    assert normalize_whitespace("  The   Argument \n") == "The Argument"
