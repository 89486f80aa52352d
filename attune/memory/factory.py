"""Memory factory — turns raw message text into a classified, scored Memory."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from attune.errors import ValidationError
from attune.memory.dictionary import KeywordDictionary
from attune.memory.models import HIGHLIGHT_CATEGORIES, ContextMeta, Memory, MemoryCategory

logger = logging.getLogger(__name__)

EXCLAMATION_MARKS = ("!", "！")
EXCLAMATION_BONUS = 0.5
EMOJI_BONUS = 1.0
LONG_MESSAGE_THRESHOLDS = (50, 100)
SPECIAL_SCORE = 8

# Checked in this order; the first category whose markers match wins.
_MARKER_PRIORITY = (
    MemoryCategory.SUPPORT,
    MemoryCategory.MILESTONE,
    MemoryCategory.GROWTH,
)


def time_of_day(now: datetime) -> str:
    """Bucket an hour into morning / afternoon / evening / night."""
    hour = now.hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


class MemoryFactory:
    """Builds ``Memory`` records using an injected keyword dictionary."""

    def __init__(self, dictionary: KeywordDictionary | None = None) -> None:
        self._dictionary = dictionary or KeywordDictionary.default()

    @property
    def dictionary(self) -> KeywordDictionary:
        return self._dictionary

    def calculate_emotion_score(self, content: str) -> int:
        """Score emotional intensity on a 1-10 scale.

        Matched keyword weights, exclamation marks, affect emoji and message
        length all add to a raw score. Plain small talk (nothing matched) is
        held to 1-3; otherwise the raw score is averaged over the number of
        matched keywords and clamped to 1-10.
        """
        matched = self._dictionary.matched_keywords(content)
        score = sum(self._dictionary.emotion_keywords[k] for k in matched)

        exclamations = sum(content.count(mark) for mark in EXCLAMATION_MARKS)
        emoji = self._dictionary.count_emoji(content)
        score += exclamations * EXCLAMATION_BONUS
        score += emoji * EMOJI_BONUS

        for threshold in LONG_MESSAGE_THRESHOLDS:
            if len(content) > threshold:
                score += 1

        if not matched and not exclamations and not emoji:
            return int(max(1, min(3, round(score))))

        return int(max(1, min(10, round(score / max(1, len(matched))))))

    def categorize_memory(
        self, content: str, emotion_score: int, is_first_time: bool = False
    ) -> MemoryCategory:
        """Pick the single category for a memory, in strict priority order."""
        if self._dictionary.has_marker(MemoryCategory.CONFESSION, content):
            return MemoryCategory.CONFESSION
        if is_first_time or self._dictionary.has_marker(MemoryCategory.FIRST, content):
            return MemoryCategory.FIRST
        for category in _MARKER_PRIORITY:
            if self._dictionary.has_marker(category, content):
                return category
        if emotion_score >= SPECIAL_SCORE:
            return MemoryCategory.SPECIAL
        return MemoryCategory.EMOTION

    def extract_keywords(self, content: str) -> list[str]:
        """Dictionary keywords plus topical matches, deduplicated in order."""
        found = self._dictionary.matched_keywords(content)
        found.extend(self._dictionary.topic_matches(content))
        return list(dict.fromkeys(found))

    def create_memory(
        self,
        content: str,
        original_message: str,
        context_meta: ContextMeta | None = None,
        relationship_level: float = 0.0,
        *,
        is_first_time: bool = False,
        now: datetime | None = None,
    ) -> Memory:
        """Classify and score *content* into a new ``Memory``.

        Raises ``ValidationError`` for empty content or an out-of-range
        relationship level.
        """
        if not content or not content.strip():
            msg = "Memory content must not be empty"
            raise ValidationError(msg)
        if not 0 <= relationship_level <= 100:
            msg = f"Relationship level must be within 0-100, got {relationship_level}"
            raise ValidationError(msg)

        created = now or datetime.now(UTC)
        meta = context_meta or ContextMeta(time_of_day=time_of_day(created))

        emotion_score = self.calculate_emotion_score(content)
        category = self.categorize_memory(content, emotion_score, is_first_time)
        memory = Memory(
            content=content,
            original_message=original_message or content,
            timestamp=created,
            emotion_score=emotion_score,
            weight=float(emotion_score),
            category=category,
            relationship_level_at_creation=relationship_level,
            keywords=self.extract_keywords(content),
            context_meta=meta,
            is_highlight=emotion_score >= SPECIAL_SCORE or category in HIGHLIGHT_CATEGORIES,
        )
        logger.debug(
            "Created memory %s [%s] score=%d highlight=%s",
            memory.id,
            category,
            emotion_score,
            memory.is_highlight,
        )
        return memory
