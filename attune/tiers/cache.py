"""Cache tier — recent turns per session with a sliding window and TTL."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from attune.errors import ConnectivityError
from attune.tiers.models import CleanupOutcome, StoredMessage, TierKind, TierStatus

if TYPE_CHECKING:
    from attune.tiers.base import CacheClient

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_MAX_MESSAGES = 10


@dataclass
class _CachedSession:
    messages: deque[StoredMessage]
    expires_at: float = field(default=0.0)


class InMemoryCacheClient:
    """Process-local cache keyed by (user_id, session_id).

    Keeps the latest *max_messages* turns of each session. A session expires
    *ttl_seconds* after it was last written or read.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max = max(1, max_messages)
        self._clock = clock
        self._sessions: dict[tuple[str, str], _CachedSession] = {}

    def _live(self, key: tuple[str, str]) -> _CachedSession | None:
        entry = self._sessions.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._sessions[key]
            return None
        return entry

    async def push_recent(self, user_id: str, session_id: str, message: StoredMessage) -> None:
        key = (user_id, session_id)
        entry = self._live(key)
        if entry is None:
            entry = _CachedSession(messages=deque(maxlen=self._max))
            self._sessions[key] = entry
        entry.messages.append(message)
        entry.expires_at = self._clock() + self._ttl

    async def get_recent(self, user_id: str, session_id: str) -> list[StoredMessage]:
        entry = self._live((user_id, session_id))
        if entry is None:
            return []
        entry.expires_at = self._clock() + self._ttl
        return list(entry.messages)

    async def purge_expired(self, user_id: str) -> int:
        now = self._clock()
        expired = [
            key
            for key, entry in self._sessions.items()
            if key[0] == user_id and entry.expires_at <= now
        ]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    async def ping(self) -> bool:
        return True


class CacheTier:
    """Low-latency tier over a ``CacheClient``."""

    kind = TierKind.CACHE
    authoritative = False
    deferred = False

    def __init__(self, client: CacheClient) -> None:
        self._client = client

    async def write(self, message: StoredMessage) -> None:
        try:
            await self._client.push_recent(message.user_id, message.session_id, message)
        except ConnectivityError:
            raise
        except Exception as exc:
            raise ConnectivityError(self.kind, str(exc)) from exc

    async def read(
        self, user_id: str, session_id: str, query: str, limit: int, threshold: float
    ) -> list[StoredMessage]:
        try:
            return await self._client.get_recent(user_id, session_id)
        except ConnectivityError:
            raise
        except Exception as exc:
            raise ConnectivityError(self.kind, str(exc)) from exc

    async def status(self) -> TierStatus:
        try:
            reachable = await self._client.ping()
        except Exception as exc:
            return TierStatus(tier=self.kind, reachable=False, error=str(exc))
        return TierStatus(tier=self.kind, reachable=reachable)

    async def cleanup(self, user_id: str) -> CleanupOutcome:
        evicted = await self._client.purge_expired(user_id)
        if evicted:
            logger.info("Evicted %d expired cache sessions for %s", evicted, user_id[:8])
        return CleanupOutcome(tier=self.kind, affected=evicted, details={"evicted": evicted})
