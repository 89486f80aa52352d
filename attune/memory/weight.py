"""Weight engine — recomputes a memory's importance on demand.

Weights are never stored as truth. Every operation here derives them from a
memory's fields and the moment of evaluation, and returns copies carrying the
fresh value, so re-ranking a set never requires a write.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from attune.memory.models import (
    GrowthPattern,
    IntensityBuckets,
    Memory,
    MemoryCategory,
)

SECONDS_PER_DAY = 86_400
TREND_MARGIN = 0.5

# Categories whose memories fade much more slowly.
DECAY_RESISTANT_CATEGORIES = frozenset(
    {MemoryCategory.CONFESSION, MemoryCategory.MILESTONE, MemoryCategory.FIRST}
)


def _default_bonuses() -> dict[MemoryCategory, float]:
    return {
        MemoryCategory.FIRST: 2.0,
        MemoryCategory.MILESTONE: 1.5,
        MemoryCategory.CONFESSION: 3.0,
        MemoryCategory.SUPPORT: 2.0,
        MemoryCategory.SPECIAL: 2.0,
        MemoryCategory.GROWTH: 1.0,
        MemoryCategory.EMOTION: 0.0,
    }


class WeightConfig(BaseModel):
    """Tunable constants for weight recomputation."""

    model_config = ConfigDict(frozen=True)

    base_decay_rate: float = Field(default=0.01, ge=0)  # per day
    category_bonuses: dict[MemoryCategory, float] = Field(default_factory=_default_bonuses)
    reference_bonus_rate: float = Field(default=0.2, ge=0)
    reference_bonus_cap: float = Field(default=3.0, ge=0)
    relationship_level_factor: float = Field(default=0.1, ge=0)
    decay_floor: float = Field(default=0.1, ge=0, le=1)
    min_weight: float = 0.1
    max_weight: float = 10.0


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days elapsed from *earlier* to *later*, never negative."""
    seconds = (later - earlier).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class WeightEngine:
    """Pure weight computations over memories and memory sets."""

    def __init__(self, config: WeightConfig | None = None) -> None:
        self._config = config or WeightConfig()

    @property
    def config(self) -> WeightConfig:
        return self._config

    # -- Single memory ---------------------------------------------------------

    def decay_resistance(self, memory: Memory) -> float:
        """Multiplier on the decay rate; lower means slower fading."""
        resistance = 1.0
        if memory.emotion_score >= 8:
            resistance *= 0.3
        elif memory.emotion_score >= 6:
            resistance *= 0.5
        if memory.category in DECAY_RESISTANT_CATEGORIES:
            resistance *= 0.2
        if memory.is_highlight:
            resistance *= 0.1
        return resistance

    def recalculate_weight(self, memory: Memory, now: datetime | None = None) -> float:
        """Current importance of *memory*, always within [0.1, 10]."""
        cfg = self._config
        now = _aware(now or datetime.now(UTC))

        weight = float(memory.emotion_score)
        weight += cfg.category_bonuses.get(memory.category, 0.0)

        days = days_between(now, _aware(memory.timestamp))
        decay = math.exp(-days * cfg.base_decay_rate * self.decay_resistance(memory))
        weight *= max(cfg.decay_floor, decay)

        weight += min(cfg.reference_bonus_cap, memory.reference_count * cfg.reference_bonus_rate)
        weight += memory.relationship_level_at_creation * cfg.relationship_level_factor

        return max(cfg.min_weight, min(cfg.max_weight, weight))

    # -- Memory sets -----------------------------------------------------------

    def recalculate_all(
        self, memories: Iterable[Memory], now: datetime | None = None
    ) -> list[Memory]:
        """Copies of *memories* carrying freshly computed weights."""
        now = now or datetime.now(UTC)
        return [m.model_copy(update={"weight": self.recalculate_weight(m, now)}) for m in memories]

    def select_important_memories(
        self, memories: Iterable[Memory], k: int = 5, now: datetime | None = None
    ) -> list[Memory]:
        """Top *k* memories by current weight."""
        ranked = sorted(self.recalculate_all(memories, now), key=lambda m: m.weight, reverse=True)
        return ranked[: max(0, k)]

    def get_memories_in_period(
        self,
        memories: Iterable[Memory],
        start: datetime,
        end: datetime,
        min_weight: float = 3.0,
        now: datetime | None = None,
    ) -> list[Memory]:
        """Memories created within [start, end] whose weight reaches *min_weight*."""
        start, end = _aware(start), _aware(end)
        in_range = [m for m in memories if start <= _aware(m.timestamp) <= end]
        weighted = [m for m in self.recalculate_all(in_range, now) if m.weight >= min_weight]
        return sorted(weighted, key=lambda m: m.weight, reverse=True)

    def categorize_by_intensity(
        self, memories: Iterable[Memory], now: datetime | None = None
    ) -> IntensityBuckets:
        buckets = IntensityBuckets()
        for memory in self.recalculate_all(memories, now):
            if memory.weight >= 8:
                buckets.very_high.append(memory)
            elif memory.weight >= 6:
                buckets.high.append(memory)
            elif memory.weight >= 3:
                buckets.medium.append(memory)
            else:
                buckets.low.append(memory)
        return buckets

    # -- Relatedness -----------------------------------------------------------

    @staticmethod
    def relatedness_score(a: Memory, b: Memory) -> float:
        """Heuristic similarity between two memories."""
        score = 0.0
        score += 2 * len(set(a.keywords) & set(b.keywords))
        if a.category == b.category:
            score += 3
        days_apart = abs((_aware(a.timestamp) - _aware(b.timestamp)).total_seconds())
        days_apart /= SECONDS_PER_DAY
        if days_apart <= 7:
            score += 2
        elif days_apart <= 30:
            score += 1
        if abs(a.relationship_level_at_creation - b.relationship_level_at_creation) <= 1:
            score += 1
        return score

    def related_cluster(
        self,
        target: Memory,
        memories: Iterable[Memory],
        min_relatedness: float = 3.0,
        max_cluster_size: int = 5,
    ) -> list[Memory]:
        """The memories most related to *target*, strongest first."""
        scored = [
            (self.relatedness_score(target, m), m) for m in memories if m.id != target.id
        ]
        scored = [pair for pair in scored if pair[0] >= min_relatedness]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [m for _, m in scored[: max(0, max_cluster_size)]]

    # -- Growth ----------------------------------------------------------------

    @staticmethod
    def growth_pattern(memories: Iterable[Memory]) -> GrowthPattern:
        """Summarize count, mean score, categories, trend and busiest month."""
        ordered = sorted(memories, key=lambda m: _aware(m.timestamp))
        distribution = {category: 0 for category in MemoryCategory}
        for memory in ordered:
            distribution[memory.category] += 1

        if not ordered:
            return GrowthPattern(
                total_memories=0,
                average_emotion_score=0.0,
                category_distribution=distribution,
                emotional_growth_trend="stable",
                most_active_month="",
            )

        average = sum(m.emotion_score for m in ordered) / len(ordered)

        midpoint = len(ordered) // 2
        first_half, second_half = ordered[:midpoint], ordered[midpoint:]
        trend = "stable"
        if first_half:
            first_avg = sum(m.emotion_score for m in first_half) / len(first_half)
            second_avg = sum(m.emotion_score for m in second_half) / len(second_half)
            if second_avg > first_avg + TREND_MARGIN:
                trend = "increasing"
            elif second_avg < first_avg - TREND_MARGIN:
                trend = "decreasing"

        months = Counter(m.month_key for m in ordered)
        most_active = months.most_common(1)[0][0]

        return GrowthPattern(
            total_memories=len(ordered),
            average_emotion_score=average,
            category_distribution=distribution,
            emotional_growth_trend=trend,
            most_active_month=most_active,
        )
