"""Tests for the context classifier."""

import pytest

from attune.context import ContextType, analyze_context


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("それって何？", ContextType.REFERENCE),
        ("もっと詳しく教えて", ContextType.FOLLOW_UP),
        ("新しい質問です", ContextType.GENERAL),
        ("What was that song you mentioned?", ContextType.REFERENCE),
        ("Tell me more about Kyoto", ContextType.FOLLOW_UP),
        ("How do I bake bread?", ContextType.GENERAL),
    ],
)
def test_classifies(message: str, expected: ContextType) -> None:
    assert analyze_context(message) == expected


def test_reference_checked_before_follow_up() -> None:
    """A message with both kinds of marker is a reference."""
    assert analyze_context("その話をもっと聞かせて") == ContextType.REFERENCE


def test_english_markers_match_whole_words() -> None:
    # substrings of longer words do not count
    assert analyze_context("I want to visit Paris") == ContextType.GENERAL
    assert analyze_context("Sophomore year was fun") == ContextType.GENERAL


def test_history_does_not_change_label() -> None:
    assert analyze_context("新しい質問です", ["それって何？"]) == ContextType.GENERAL
