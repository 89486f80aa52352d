"""Tier and collaborator protocols.

Each storage tier is a strategy tagged with a ``TierKind``. The orchestrator
fans out over whatever tiers it was given without knowing their backends, so
adding a fourth tier means adding one more implementation of ``MemoryTier``.
The collaborator protocols describe what each tier needs from its backend.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from attune.tiers.models import (
        CleanupOutcome,
        SemanticMatch,
        StoredMessage,
        TierKind,
        TierStatus,
    )


@runtime_checkable
class MemoryTier(Protocol):
    """One backing store consulted by the orchestrator."""

    @property
    def kind(self) -> TierKind:
        """Which tier this is."""
        ...

    @property
    def authoritative(self) -> bool:
        """True if a failed write must fail the whole save."""
        ...

    @property
    def deferred(self) -> bool:
        """True if writes run in the background after the durable write."""
        ...

    async def write(self, message: StoredMessage) -> None:
        """Store *message*."""
        ...

    async def read(
        self, user_id: str, session_id: str, query: str, limit: int, threshold: float
    ) -> Sequence[StoredMessage | SemanticMatch]:
        """Return this tier's results for a search."""
        ...

    async def status(self) -> TierStatus:
        """Report reachability."""
        ...

    async def cleanup(self, user_id: str) -> CleanupOutcome:
        """Purge or evict what this tier owns for *user_id*."""
        ...


# -- Backend collaborators -------------------------------------------------------


@runtime_checkable
class CacheClient(Protocol):
    """Short-retention, session-scoped store of recent turns."""

    async def push_recent(self, user_id: str, session_id: str, message: StoredMessage) -> None:
        ...

    async def get_recent(self, user_id: str, session_id: str) -> list[StoredMessage]:
        """Messages of the session in the order they were pushed."""
        ...

    async def purge_expired(self, user_id: str) -> int:
        """Drop expired sessions; returns how many were dropped."""
        ...

    async def ping(self) -> bool:
        ...


@runtime_checkable
class DurableStoreClient(Protocol):
    """Append-only source of truth for every message."""

    async def append_message(self, user_id: str, session_id: str, message: StoredMessage) -> str:
        """Persist *message* and return its id."""
        ...

    async def fetch_messages(self, session_id: str, limit: int | None = None) -> list[StoredMessage]:
        """Newest-first messages of a session."""
        ...

    async def fetch_unembedded(self, user_id: str, limit: int) -> list[StoredMessage]:
        """Oldest messages of a user that have no embedding yet."""
        ...

    async def mark_embedded(self, message_id: str) -> None:
        ...

    async def ping(self) -> bool:
        ...


@runtime_checkable
class EmbeddingService(Protocol):
    """Turns text into a vector."""

    async def embed(self, text: str) -> list[float]:
        ...


@runtime_checkable
class VectorIndex(Protocol):
    """Similarity search over embedded messages."""

    async def upsert(self, message: StoredMessage, vector: Sequence[float]) -> None:
        ...

    async def search(
        self, vector: Sequence[float], user_id: str, k: int, threshold: float
    ) -> list[SemanticMatch]:
        """Matches at or above *threshold*, most similar first, at most *k*."""
        ...

    async def ping(self) -> bool:
        ...
