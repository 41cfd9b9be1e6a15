"""Tests for the patch engine."""

from __future__ import annotations

import itertools

import pytest

from inkwell.documents.models import EditSuggestion, SuggestionType, TextRange
from inkwell.editor.patches import (
    PatchApplyError,
    PatchConflictError,
    apply_multiple_patches,
    apply_patch,
    find_conflicts,
    invert_suggestion,
    rebase_suggestions,
)


def _replace(start: int, end: int, text: str, original: str = "", id: str | None = None) -> EditSuggestion:
    kwargs = {"id": id} if id else {}
    return EditSuggestion(
        type=SuggestionType.REPLACE,
        range=TextRange(start, end),
        suggested_text=text,
        original_text=original,
        **kwargs,
    )


def test_replace_substitutes_the_range() -> None:
    assert apply_patch("Hello world", _replace(0, 5, "Hi")) == "Hi world"


def test_insert_and_delete() -> None:
    insert = EditSuggestion(type=SuggestionType.INSERT, range=TextRange(5, 5), suggested_text=",")
    delete = EditSuggestion(type=SuggestionType.DELETE, range=TextRange(5, 11), original_text=" world")

    assert apply_patch("Hello world", insert) == "Hello, world"
    assert apply_patch("Hello world", delete) == "Hello"


def test_stale_original_text_is_rejected() -> None:
    with pytest.raises(PatchApplyError) as excinfo:
        apply_patch("Hello world", _replace(0, 5, "Hi", original="Howdy"))

    assert excinfo.value.reason == "range_mismatch"
    assert excinfo.value.expected == "Howdy"
    assert excinfo.value.actual == "Hello"


def test_range_past_the_end_is_rejected() -> None:
    with pytest.raises(PatchApplyError) as excinfo:
        apply_patch("short", _replace(2, 40, "x"))

    assert excinfo.value.reason == "range_overflow"


def test_insert_with_non_empty_range_is_rejected() -> None:
    suggestion = EditSuggestion(type=SuggestionType.INSERT, range=TextRange(1, 3), suggested_text="x")

    with pytest.raises(PatchApplyError) as excinfo:
        apply_patch("abcdef", suggestion)

    assert excinfo.value.reason == "invalid_range"


def test_multiple_patches_shift_later_offsets() -> None:
    first = _replace(0, 1, "AA", id="s1")
    second = _replace(3, 4, "D", id="s2")

    assert apply_multiple_patches("abcdef", [first, second], ["s1", "s2"]) == "AAbcDef"


def test_result_does_not_depend_on_accepted_id_order() -> None:
    suggestions = [
        _replace(0, 5, "Hi", original="Hello", id="a"),
        EditSuggestion(type=SuggestionType.INSERT, range=TextRange(11, 11), suggested_text="!", id="b"),
        EditSuggestion(type=SuggestionType.DELETE, range=TextRange(5, 6), original_text=" ", id="c"),
    ]
    results = {
        apply_multiple_patches("Hello world", suggestions, list(order))
        for order in itertools.permutations(["a", "b", "c"])
    }

    assert results == {"Hiworld!"}


def test_only_accepted_suggestions_are_applied() -> None:
    suggestions = [_replace(0, 1, "X", id="keep"), _replace(2, 3, "Y", id="skip")]

    assert apply_multiple_patches("abc", suggestions, ["keep"]) == "Xbc"
    assert apply_multiple_patches("abc", suggestions, []) == "abc"


def test_insert_at_start_of_replaced_span_lands_before_it() -> None:
    suggestions = [
        _replace(0, 5, "Howdy", original="Hello", id="r"),
        EditSuggestion(type=SuggestionType.INSERT, range=TextRange(0, 0), suggested_text=">> ", id="i"),
    ]

    assert apply_multiple_patches("Hello world", suggestions, ["r", "i"]) == ">> Howdy world"


def test_overlapping_accepted_suggestions_fail_atomically() -> None:
    suggestions = [_replace(0, 4, "x", id="one"), _replace(2, 6, "y", id="two"), _replace(8, 9, "z", id="three")]

    with pytest.raises(PatchConflictError) as excinfo:
        apply_multiple_patches("abcdefghij", suggestions, ["one", "two", "three"])

    assert set(excinfo.value.conflicting_ids) == {"one", "two"}
    assert excinfo.value.reason == "overlap"


def test_unknown_accepted_id_is_rejected() -> None:
    with pytest.raises(PatchApplyError) as excinfo:
        apply_multiple_patches("abc", [_replace(0, 1, "x", id="known")], ["known", "ghost"])

    assert excinfo.value.reason == "unknown_suggestion"


def test_adjacent_ranges_do_not_conflict() -> None:
    suggestions = [_replace(0, 2, "x", id="a"), _replace(2, 4, "y", id="b")]

    assert find_conflicts(suggestions) == ()
    assert apply_multiple_patches("abcd", suggestions, ["a", "b"]) == "xy"


def test_replace_is_invertible() -> None:
    content = "The quick brown fox"
    suggestion = _replace(4, 9, "slow", original="quick")

    patched = apply_patch(content, suggestion)

    assert patched == "The slow brown fox"
    assert apply_patch(patched, invert_suggestion(suggestion)) == content


def test_insert_and_delete_are_invertible() -> None:
    content = "Hello world"
    insert = EditSuggestion(type=SuggestionType.INSERT, range=TextRange(5, 5), suggested_text=" there")
    delete = EditSuggestion(type=SuggestionType.DELETE, range=TextRange(0, 6), original_text="Hello ")

    assert apply_patch(apply_patch(content, insert), invert_suggestion(insert)) == content
    assert apply_patch(apply_patch(content, delete), invert_suggestion(delete)) == content


def test_inverting_without_original_text_fails() -> None:
    with pytest.raises(PatchApplyError) as excinfo:
        invert_suggestion(_replace(0, 3, "xyz"))

    assert excinfo.value.reason == "not_invertible"


def test_rebase_shifts_suggestions_after_applied_edits() -> None:
    applied = [_replace(0, 5, "Hi", id="a"), _replace(6, 7, "WW", id="b")]
    caret_at_start = EditSuggestion(type=SuggestionType.INSERT, range=TextRange(0, 0), suggested_text=">", id="c")
    after_both = _replace(8, 11, "x", id="d")
    inside = _replace(2, 4, "y", id="e")

    rebased, invalidated = rebase_suggestions([caret_at_start, after_both, inside], applied)

    assert [item.id for item in rebased] == ["c", "d"]
    assert rebased[0].range == TextRange(0, 0)
    assert rebased[1].range == TextRange(6, 9)
    assert invalidated == ("e",)
