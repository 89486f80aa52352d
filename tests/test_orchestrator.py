"""Tests for TieredMemoryOrchestrator fan-out, degradation and maintenance."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from attune.context import ContextType
from attune.errors import ConnectivityError, DataIntegrityError, ValidationError
from attune.orchestrator import (
    SearchOptions,
    TieredMemoryOrchestrator,
    build_summary,
)
from attune.tasks import BackgroundTasks
from attune.tiers.cache import CacheTier, InMemoryCacheClient
from attune.tiers.durable import DurableTier, SQLiteMessageStore
from attune.tiers.models import MessagePayload, StoredMessage, TierKind
from tests.conftest import FakeEmbedder

NO_TIERS = SearchOptions(
    include_short_term=False, include_medium_term=False, include_vector_search=False
)
SHORT_TERM_ONLY = SearchOptions(include_medium_term=False, include_vector_search=False)


def _payload(content: str, **kwargs) -> MessagePayload:
    return MessagePayload(content=content, **kwargs)


class SlowTier(CacheTier):
    async def read(self, user_id, session_id, query, limit, threshold):
        await asyncio.sleep(10)
        return []


# -- save_message --------------------------------------------------------------


async def test_save_writes_every_tier(
    orchestrator: TieredMemoryOrchestrator, store: SQLiteMessageStore, embedder: FakeEmbedder
) -> None:
    result = await orchestrator.save_message("user-1", "s1", _payload("初めて一緒に旅行した"))

    assert result.cache_saved is True
    assert result.durable_saved is True
    assert result.embedding_scheduled is True
    assert [m.id for m in await store.fetch_messages("s1")] == [result.message.id]

    await orchestrator.tasks.drain()
    assert embedder.calls == ["初めて一緒に旅行した"]
    assert await store.fetch_unembedded("user-1", 5) == []


async def test_save_does_not_wait_for_embedding(
    orchestrator: TieredMemoryOrchestrator,
) -> None:
    result = await orchestrator.save_message("user-1", "s1", _payload("hello"))
    assert result.embedding_scheduled is True
    assert orchestrator.tasks.pending == 1
    await orchestrator.tasks.drain()
    assert orchestrator.tasks.pending == 0


async def test_save_rejects_empty_content(orchestrator: TieredMemoryOrchestrator) -> None:
    with pytest.raises(ValidationError):
        await orchestrator.save_message("user-1", "s1", _payload("   "))


async def test_durable_failure_is_raised(store: SQLiteMessageStore) -> None:
    failing = AsyncMock()
    failing.append_message.side_effect = OSError("disk full")
    tasks = BackgroundTasks()
    orchestrator = TieredMemoryOrchestrator(
        CacheTier(InMemoryCacheClient()), DurableTier(failing), tasks=tasks
    )
    with pytest.raises(DataIntegrityError):
        await orchestrator.save_message("user-1", "s1", _payload("hello"))
    assert tasks.pending == 0


async def test_cache_failure_degrades(store: SQLiteMessageStore) -> None:
    cache = AsyncMock()
    cache.push_recent.side_effect = ConnectionError("cache down")
    orchestrator = TieredMemoryOrchestrator(CacheTier(cache), DurableTier(store))

    result = await orchestrator.save_message("user-1", "s1", _payload("hello"))

    assert result.cache_saved is False
    assert result.durable_saved is True
    assert result.embedding_scheduled is False
    assert len(await store.fetch_messages("s1")) == 1


async def test_embedding_failure_is_logged_not_raised(
    store: SQLiteMessageStore, semantic, embedder: FakeEmbedder
) -> None:
    tasks = BackgroundTasks()
    orchestrator = TieredMemoryOrchestrator(None, DurableTier(store), semantic, tasks=tasks)
    with patch.object(embedder, "embed", AsyncMock(side_effect=RuntimeError("boom"))):
        result = await orchestrator.save_message("user-1", "s1", _payload("hello"))
        await tasks.drain()
    assert result.durable_saved is True
    assert len(await store.fetch_unembedded("user-1", 5)) == 1


# -- search_memories -----------------------------------------------------------


async def test_all_tiers_disabled_returns_empty(orchestrator: TieredMemoryOrchestrator) -> None:
    await orchestrator.save_message("user-1", "s1", _payload("hello"))
    result = await orchestrator.search_memories("user-1", "hello", "s1", NO_TIERS)

    assert result.short_term == []
    assert result.medium_term == []
    assert result.semantic == []
    assert result.total_messages == 0
    assert result.context.has_recent_context is False


async def test_short_term_returns_saved_messages_in_order(
    orchestrator: TieredMemoryOrchestrator,
) -> None:
    texts = [f"message {i}" for i in range(5)]
    for text in texts:
        await orchestrator.save_message("user-1", "s1", _payload(text))

    result = await orchestrator.search_memories("user-1", "anything", "s1", SHORT_TERM_ONLY)

    assert [m.content for m in result.short_term] == texts
    assert result.total_messages == 5
    assert result.context.has_recent_context is True


async def test_medium_term_is_newest_first_and_capped(
    orchestrator: TieredMemoryOrchestrator,
) -> None:
    for i in range(7):
        await orchestrator.save_message("user-1", "s1", _payload(f"message {i}"))

    options = SearchOptions(include_short_term=False, include_vector_search=False, max_results=3)
    result = await orchestrator.search_memories("user-1", "q", "s1", options)

    assert [m.content for m in result.medium_term] == ["message 6", "message 5", "message 4"]


async def test_semantic_search_after_embedding(orchestrator: TieredMemoryOrchestrator) -> None:
    await orchestrator.save_message("user-1", "s1", _payload("the sea at dusk"))
    await orchestrator.save_message("user-1", "s1", _payload("zzzz qqqq"))
    await orchestrator.tasks.drain()

    options = SearchOptions(include_short_term=False, include_medium_term=False)
    result = await orchestrator.search_memories("user-1", "the sea at dusk", "s2", options)

    assert [m.message.content for m in result.semantic] == ["the sea at dusk"]
    assert result.context.has_similar_memories is True
    assert "similar past experiences" in result.context.contextual_summary


async def test_failed_tier_contributes_empty_list(store: SQLiteMessageStore) -> None:
    cache = AsyncMock()
    cache.get_recent.side_effect = ConnectivityError(TierKind.CACHE, "refused")
    orchestrator = TieredMemoryOrchestrator(CacheTier(cache), DurableTier(store))
    await store.append_message(
        "user-1", "s1", StoredMessage(user_id="user-1", session_id="s1", content="kept")
    )

    result = await orchestrator.search_memories("user-1", "q", "s1")

    assert result.short_term == []
    assert [m.content for m in result.medium_term] == ["kept"]


async def test_slow_tier_times_out(store: SQLiteMessageStore) -> None:
    orchestrator = TieredMemoryOrchestrator(
        SlowTier(InMemoryCacheClient()), DurableTier(store), tier_timeout=0.05
    )
    result = await orchestrator.search_memories("user-1", "q", "s1")
    assert result.short_term == []


async def test_summary_reflects_context_type(orchestrator: TieredMemoryOrchestrator) -> None:
    await orchestrator.save_message("user-1", "s1", _payload("we talked about Kyoto"))
    options = SearchOptions(
        include_vector_search=False, context_type=ContextType.REFERENCE
    )
    result = await orchestrator.search_memories("user-1", "それって何？", "s1", options)

    lines = result.context.contextual_summary.splitlines()
    assert lines[0] == "Can answer by referring to the recent conversation."
    assert lines[1:] == ["- we talked about Kyoto"]


def test_summary_without_results() -> None:
    summary = build_summary(ContextType.GENERAL, [], [], [])
    assert summary.contextual_summary == "Treating this as a new topic."


def test_summary_limits_snippets() -> None:
    messages = [
        StoredMessage(user_id="u", session_id="s", content=f"line {i} " + "x" * 100)
        for i in range(5)
    ]
    summary = build_summary(ContextType.FOLLOW_UP, messages, messages, [])
    lines = summary.contextual_summary.splitlines()
    assert len(lines) == 4
    assert lines[1].startswith("- line 4")
    assert all(len(line) <= 82 for line in lines[1:])


async def test_analyze_context_delegates(orchestrator: TieredMemoryOrchestrator) -> None:
    assert orchestrator.analyze_context("もっと詳しく教えて") == ContextType.FOLLOW_UP


# -- get_system_status ---------------------------------------------------------


async def test_status_reports_every_tier(orchestrator: TieredMemoryOrchestrator) -> None:
    status = await orchestrator.get_system_status()
    assert [t.tier for t in status.tiers] == [TierKind.CACHE, TierKind.DURABLE, TierKind.SEMANTIC]
    assert status.healthy is True


async def test_status_never_raises(tmp_path: Path) -> None:
    broken_dir = tmp_path / "dir-not-db"
    broken_dir.mkdir()
    cache = AsyncMock()
    cache.ping.side_effect = RuntimeError("down")
    orchestrator = TieredMemoryOrchestrator(
        CacheTier(cache), DurableTier(SQLiteMessageStore(db_path=broken_dir))
    )

    status = await orchestrator.get_system_status()

    by_kind = {t.tier: t for t in status.tiers}
    assert by_kind[TierKind.CACHE].reachable is False
    assert by_kind[TierKind.DURABLE].reachable is False
    assert by_kind[TierKind.SEMANTIC].enabled is False
    assert status.healthy is False


# -- cleanup -------------------------------------------------------------------


async def test_cleanup_runs_each_tier(
    orchestrator: TieredMemoryOrchestrator, store: SQLiteMessageStore
) -> None:
    message = StoredMessage(user_id="user-1", session_id="s1", content="missed embedding")
    await store.append_message("user-1", "s1", message)

    report = await orchestrator.cleanup("user-1")

    outcomes = {o.tier: o for o in report.outcomes}
    assert set(outcomes) == {TierKind.CACHE, TierKind.DURABLE, TierKind.SEMANTIC}
    assert outcomes[TierKind.SEMANTIC].details["success"] == 1


async def test_cleanup_failure_is_isolated(store: SQLiteMessageStore) -> None:
    cache = AsyncMock()
    cache.purge_expired.side_effect = RuntimeError("cache down")
    orchestrator = TieredMemoryOrchestrator(CacheTier(cache), DurableTier(store))

    report = await orchestrator.cleanup("user-1")

    outcomes = {o.tier: o for o in report.outcomes}
    assert outcomes[TierKind.CACHE].error == "cache down"
    assert outcomes[TierKind.DURABLE].error is None


# -- SearchOptions -------------------------------------------------------------


def test_search_defaults_follow_settings() -> None:
    with (
        patch("attune.orchestrator.settings.similarity_threshold", 0.9),
        patch("attune.orchestrator.settings.search_max_results", 20),
    ):
        options = SearchOptions()
    assert options.similarity_threshold == 0.9
    assert options.max_results == 20
    assert SearchOptions(max_results=2).max_results == 2


# -- get / _reset --------------------------------------------------------------


def test_shared_instance_without_key(tmp_path: Path) -> None:
    TieredMemoryOrchestrator._reset()
    with patch("attune.orchestrator.settings.database_path", tmp_path / "shared.db"):
        first = TieredMemoryOrchestrator.get()
        assert TieredMemoryOrchestrator.get() is first
        assert first._tiers[TierKind.SEMANTIC] is None
    TieredMemoryOrchestrator._reset()
