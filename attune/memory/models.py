"""Data models for scored conversational memories."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class MemoryCategory(StrEnum):
    FIRST = "first"
    SPECIAL = "special"
    GROWTH = "growth"
    EMOTION = "emotion"
    MILESTONE = "milestone"
    CONFESSION = "confession"
    SUPPORT = "support"


# Categories that always mark a memory as a highlight.
HIGHLIGHT_CATEGORIES = frozenset({MemoryCategory.CONFESSION, MemoryCategory.MILESTONE})


class ContextMeta(BaseModel):
    """Where in the conversation a memory was formed."""

    user_archetype: str = ""
    ai_archetype: str = ""
    time_of_day: str = ""
    turn_index: int = Field(default=0, ge=0)


class Memory(BaseModel):
    """A scored unit of conversational significance.

    ``weight`` is a cached convenience value only. The authoritative weight is
    whatever ``WeightEngine.recalculate_weight`` returns for a given moment,
    so ranking never needs to write anything back.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    content: str
    original_message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    emotion_score: int = Field(ge=1, le=10)
    weight: float = Field(default=1.0, ge=0.1, le=10)
    category: MemoryCategory = MemoryCategory.EMOTION
    relationship_level_at_creation: float = Field(default=0.0, ge=0, le=100)
    reference_count: int = Field(default=0, ge=0)
    keywords: list[str] = Field(default_factory=list)
    context_meta: ContextMeta = Field(default_factory=ContextMeta)
    is_highlight: bool = False

    def record_reference(self) -> int:
        """Note that retrieval surfaced this memory. Returns the new count."""
        self.reference_count += 1
        return self.reference_count

    @property
    def month_key(self) -> str:
        return f"{self.timestamp.year}-{self.timestamp.month:02d}"


class IntensityBuckets(BaseModel):
    """Memories grouped by recomputed weight."""

    very_high: list[Memory] = Field(default_factory=list)
    high: list[Memory] = Field(default_factory=list)
    medium: list[Memory] = Field(default_factory=list)
    low: list[Memory] = Field(default_factory=list)


class GrowthPattern(BaseModel):
    """Summary of how a memory set has developed over time."""

    total_memories: int
    average_emotion_score: float
    category_distribution: dict[MemoryCategory, int]
    emotional_growth_trend: str  # increasing, stable, decreasing
    most_active_month: str


class MemoryCollection(BaseModel):
    """An album view over a user's memories."""

    memories: list[Memory]
    total_count: int
    highlight_memories: list[Memory]
    category_stats: dict[MemoryCategory, int]
    monthly_stats: dict[str, int]
