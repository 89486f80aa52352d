"""Album helpers: local recall, keyword links and collection stats."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from attune.memory.models import Memory, MemoryCategory, MemoryCollection
from attune.memory.weight import WeightEngine


def recall(
    memories: Iterable[Memory],
    query: str,
    category: MemoryCategory | None = None,
    limit: int = 10,
    *,
    engine: WeightEngine | None = None,
    now: datetime | None = None,
) -> list[Memory]:
    """Find memories matching *query* by content or keyword, heaviest first.

    Every memory returned has its ``reference_count`` incremented, which in
    turn reinforces its future weight.
    """
    engine = engine or WeightEngine()
    needle = query.lower()
    matches = [
        m
        for m in memories
        if (category is None or m.category == category)
        and (needle in m.content.lower() or any(needle in k.lower() for k in m.keywords))
    ]
    ranked = sorted(
        matches, key=lambda m: engine.recalculate_weight(m, now), reverse=True
    )[: max(0, limit)]
    for memory in ranked:
        memory.record_reference()
    return ranked


def related_by_keywords(
    memories: Iterable[Memory],
    keywords: Iterable[str],
    limit: int = 3,
    *,
    engine: WeightEngine | None = None,
    now: datetime | None = None,
) -> list[Memory]:
    """Memories sharing a keyword (substring either way) with *keywords*."""
    engine = engine or WeightEngine()
    current = [k for k in keywords if k]
    related = [
        m
        for m in memories
        if any(c in k or k in c for k in m.keywords for c in current)
    ]
    related.sort(key=lambda m: engine.recalculate_weight(m, now), reverse=True)
    return related[: max(0, limit)]


def monthly_stats(memories: Iterable[Memory]) -> dict[str, int]:
    stats: dict[str, int] = {}
    for memory in memories:
        stats[memory.month_key] = stats.get(memory.month_key, 0) + 1
    return stats


def build_collection(memories: Iterable[Memory]) -> MemoryCollection:
    """Newest-first album with highlight, category and monthly breakdowns."""
    items = sorted(memories, key=lambda m: m.timestamp, reverse=True)
    category_stats = {category: 0 for category in MemoryCategory}
    for memory in items:
        category_stats[memory.category] += 1
    return MemoryCollection(
        memories=items,
        total_count=len(items),
        highlight_memories=[m for m in items if m.is_highlight],
        category_stats=category_stats,
        monthly_stats=monthly_stats(items),
    )
