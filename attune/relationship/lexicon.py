"""Marker phrase lists used by the relationship heuristics.

Matching is case-insensitive substring search, which works for both
Japanese (no word boundaries) and the short English phrases listed here.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict


def count_markers(text: str, markers: Iterable[str]) -> int:
    """Number of distinct *markers* contained in *text*."""
    lowered = text.lower()
    return sum(1 for marker in markers if marker.lower() in lowered)


class RelationshipLexicon(BaseModel):
    """Phrase tables for self-disclosure, empathy, topics and emotions."""

    model_config = ConfigDict(frozen=True)

    self_disclosure: tuple[str, ...] = (
        "私は", "ぼくは", "僕は", "家族", "友達", "恋人", "仕事", "学校", "趣味", "夢", "悩み",
        "my family", "my job", "my dream", "i feel", "honestly",
    )
    empathy: tuple[str, ...] = (
        "気持ち", "理解", "大変", "大丈夫", "寄り添", "応援", "共感",
        "understand", "that sounds", "i'm here",
    )
    sensitive_topics: tuple[str, ...] = (
        "死", "病気", "別れ", "失恋", "失業", "不安", "鬱", "ストレス",
        "breakup", "anxiety", "depress", "stress", "illness", "lost my job",
    )
    appropriate_response: tuple[str, ...] = (
        "そっと", "ゆっくり", "無理しない", "大切", "理解", "寄り添",
        "take your time", "no pressure", "understand",
    )
    support: tuple[str, ...] = (
        "大丈夫", "一緒に", "理解", "応援", "寄り添", "そっと", "無理しない",
        "together", "i'm here", "understand",
    )
    positive_response: tuple[str, ...] = (
        "嬉しい", "よかった", "素晴らしい", "素敵", "おめでとう",
        "glad", "great", "wonderful", "congratulations",
    )
    special_moments: tuple[str, ...] = (
        "誕生日", "記念日", "告白", "大切な", "特別な", "初めて",
        "birthday", "anniversary", "confess", "for the first time",
    )
    topics: tuple[str, ...] = (
        "日常", "気持ち", "趣味", "仕事", "家族", "友達", "将来", "昔", "健康", "旅行",
        "hobby", "work", "family", "friend", "future", "health", "travel",
    )
    positive_emotions: frozenset[str] = frozenset(
        {"happiness", "affection", "gratitude", "excitement"}
    )
    support_seeking_emotions: frozenset[str] = frozenset({"sadness", "frustration", "confusion"})
