"""Tests for the in-process cache client and CacheTier."""

from unittest.mock import AsyncMock

import pytest

from attune.errors import ConnectivityError
from attune.tiers.base import CacheClient, MemoryTier
from attune.tiers.cache import CacheTier, InMemoryCacheClient
from attune.tiers.models import StoredMessage, TierKind


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _msg(content: str, user: str = "user-1", session: str = "s1") -> StoredMessage:
    return StoredMessage(user_id=user, session_id=session, content=content)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(clock: FakeClock) -> InMemoryCacheClient:
    return InMemoryCacheClient(ttl_seconds=60, max_messages=3, clock=clock)


# -- InMemoryCacheClient -------------------------------------------------------


async def test_returns_messages_in_push_order(client: InMemoryCacheClient) -> None:
    for text in ("a", "b"):
        await client.push_recent("user-1", "s1", _msg(text))
    assert [m.content for m in await client.get_recent("user-1", "s1")] == ["a", "b"]


async def test_keeps_latest_window(client: InMemoryCacheClient) -> None:
    for text in ("a", "b", "c", "d"):
        await client.push_recent("user-1", "s1", _msg(text))
    assert [m.content for m in await client.get_recent("user-1", "s1")] == ["b", "c", "d"]


async def test_sessions_are_isolated(client: InMemoryCacheClient) -> None:
    await client.push_recent("user-1", "s1", _msg("mine"))
    assert await client.get_recent("user-1", "s2") == []
    assert await client.get_recent("user-2", "s1") == []


async def test_expires_after_ttl(client: InMemoryCacheClient, clock: FakeClock) -> None:
    await client.push_recent("user-1", "s1", _msg("a"))
    clock.now += 61
    assert await client.get_recent("user-1", "s1") == []


async def test_read_refreshes_ttl(client: InMemoryCacheClient, clock: FakeClock) -> None:
    await client.push_recent("user-1", "s1", _msg("a"))
    clock.now += 50
    assert await client.get_recent("user-1", "s1")
    clock.now += 50
    assert [m.content for m in await client.get_recent("user-1", "s1")] == ["a"]


async def test_purge_expired(client: InMemoryCacheClient, clock: FakeClock) -> None:
    await client.push_recent("user-1", "s1", _msg("a"))
    await client.push_recent("user-1", "s2", _msg("b", session="s2"))
    clock.now += 61
    await client.push_recent("user-1", "s3", _msg("c", session="s3"))
    assert await client.purge_expired("user-1") == 2
    assert await client.get_recent("user-1", "s3")


# -- CacheTier -----------------------------------------------------------------


async def test_tier_round_trip(client: InMemoryCacheClient) -> None:
    tier = CacheTier(client)
    assert isinstance(tier, MemoryTier)
    assert isinstance(client, CacheClient)
    await tier.write(_msg("hello"))
    results = await tier.read("user-1", "s1", "", 5, 0.7)
    assert [m.content for m in results] == ["hello"]


async def test_tier_wraps_backend_errors() -> None:
    broken = AsyncMock()
    broken.push_recent.side_effect = RuntimeError("connection refused")
    broken.get_recent.side_effect = RuntimeError("connection refused")
    tier = CacheTier(broken)

    with pytest.raises(ConnectivityError) as excinfo:
        await tier.write(_msg("hello"))
    assert excinfo.value.tier == TierKind.CACHE
    with pytest.raises(ConnectivityError):
        await tier.read("user-1", "s1", "", 5, 0.7)


async def test_tier_status(client: InMemoryCacheClient) -> None:
    status = await CacheTier(client).status()
    assert status.tier == TierKind.CACHE
    assert status.reachable is True


async def test_tier_status_reports_error() -> None:
    broken = AsyncMock()
    broken.ping.side_effect = RuntimeError("down")
    status = await CacheTier(broken).status()
    assert status.reachable is False
    assert status.error == "down"


async def test_tier_cleanup(client: InMemoryCacheClient, clock: FakeClock) -> None:
    await client.push_recent("user-1", "s1", _msg("a"))
    clock.now += 120
    outcome = await CacheTier(client).cleanup("user-1")
    assert outcome.affected == 1
    assert outcome.details == {"evicted": 1}
