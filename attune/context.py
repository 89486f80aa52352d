"""Context classifier — labels how a message relates to the conversation so far."""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import StrEnum
from typing import Any


class ContextType(StrEnum):
    REFERENCE = "reference"  # points back at something already said
    FOLLOW_UP = "follow_up"  # continues or asks for more of the current thread
    GENERAL = "general"  # starts fresh


# Japanese markers match anywhere; English markers match whole words.
REFERENCE_MARKERS_JA = (
    "それ", "あれ", "この", "その", "あの", "前に言った", "先ほどの", "さっきの",
)
REFERENCE_MARKERS_EN = ("what was that", "you said", "that", "this", "it", "earlier")

FOLLOW_UP_MARKERS_JA = (
    "もっと", "さらに", "他には", "続きは", "そして", "だから", "つまり", "ということは",
)
FOLLOW_UP_MARKERS_EN = ("and then", "tell me more", "more", "also", "additionally", "go on")


def _word_pattern(markers: Sequence[str]) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(m) for m in markers) + r")\b")


_REFERENCE_EN = _word_pattern(REFERENCE_MARKERS_EN)
_FOLLOW_UP_EN = _word_pattern(FOLLOW_UP_MARKERS_EN)


def _matches(text: str, japanese: Sequence[str], english: re.Pattern[str]) -> bool:
    return any(marker in text for marker in japanese) or english.search(text) is not None


def analyze_context(message: str, recent_history: Sequence[Any] = ()) -> ContextType:
    """Classify *message* as a reference, a follow-up, or a general question.

    Reference markers are checked before follow-up markers and the first
    match wins. The decision is made from the message text alone;
    *recent_history* is accepted so callers can pass the session they
    already hold.
    """
    text = message.lower()
    if _matches(text, REFERENCE_MARKERS_JA, _REFERENCE_EN):
        return ContextType.REFERENCE
    if _matches(text, FOLLOW_UP_MARKERS_JA, _FOLLOW_UP_EN):
        return ContextType.FOLLOW_UP
    return ContextType.GENERAL
