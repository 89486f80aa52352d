"""Tiered memory orchestrator — fan-out writes and reads across storage tiers.

Writes go to the cache and durable tiers together. The durable tier is the
source of truth, so its failure fails the save; a cache failure only costs
latency on the next read. Embedding for the semantic tier is scheduled in
the background once the durable write has landed.

Reads query every enabled tier concurrently, each bounded by a timeout. A
tier that is disabled, unreachable or slow contributes an empty list.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from attune.config import settings
from attune.context import ContextType
from attune.context import analyze_context as classify_context
from attune.errors import AttuneError, DataIntegrityError, ValidationError
from attune.tasks import BackgroundTasks
from attune.tiers.base import MemoryTier
from attune.tiers.cache import CacheTier, InMemoryCacheClient
from attune.tiers.durable import DurableTier, SQLiteMessageStore
from attune.tiers.models import (
    CleanupOutcome,
    MessagePayload,
    SemanticMatch,
    StoredMessage,
    TierKind,
    TierStatus,
)
from attune.tiers.semantic import OpenAIEmbeddingService, SemanticTier, SQLiteVectorIndex

logger = logging.getLogger(__name__)

SUMMARY_SNIPPETS = 3
SNIPPET_CHARS = 80

# (context type, has recent context, has similar memories) -> headline
_HEADLINES: dict[ContextType, dict[tuple[bool, bool], str]] = {
    ContextType.REFERENCE: {
        (True, True): "Can answer by referring to the recent conversation.",
        (True, False): "Can answer by referring to the recent conversation.",
        (False, True): "Nothing recent to refer to; similar past memories may help.",
        (False, False): "Could not find what this refers to; ask for more detail.",
    },
    ContextType.FOLLOW_UP: {
        (True, True): "Can expand on this with related memories.",
        (True, False): "Can expand on this with related memories.",
        (False, True): "Can expand on this with related memories.",
        (False, False): "No related memories found to build on.",
    },
    ContextType.GENERAL: {
        (True, True): "Can answer from the recent conversation and similar past experiences.",
        (True, False): "Can answer drawing on the recent conversation.",
        (False, True): "Can answer drawing on similar past experiences.",
        (False, False): "Treating this as a new topic.",
    },
}


# -- Models ----------------------------------------------------------------------


class SearchOptions(BaseModel):
    include_short_term: bool = True
    include_medium_term: bool = True
    include_vector_search: bool = True
    max_results: int = Field(default_factory=lambda: settings.search_max_results, ge=0)
    similarity_threshold: float = Field(
        default_factory=lambda: settings.similarity_threshold, ge=0, le=1
    )
    context_type: ContextType = ContextType.GENERAL


class SaveResult(BaseModel):
    message: StoredMessage
    cache_saved: bool = False
    durable_saved: bool = False
    embedding_scheduled: bool = False


class ContextSummary(BaseModel):
    has_recent_context: bool = False
    has_similar_memories: bool = False
    contextual_summary: str = ""


class UnifiedMemoryResult(BaseModel):
    short_term: list[StoredMessage] = Field(default_factory=list)
    medium_term: list[StoredMessage] = Field(default_factory=list)
    semantic: list[SemanticMatch] = Field(default_factory=list)
    total_messages: int = 0
    searched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    context: ContextSummary = Field(default_factory=ContextSummary)


class SystemStatus(BaseModel):
    tiers: list[TierStatus]
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def healthy(self) -> bool:
        """True if every enabled tier is reachable."""
        return all(t.reachable for t in self.tiers if t.enabled)


class CleanupReport(BaseModel):
    user_id: str
    outcomes: list[CleanupOutcome]
    cleaned_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def build_summary(
    context_type: ContextType,
    short_term: Sequence[StoredMessage],
    medium_term: Sequence[StoredMessage],
    semantic: Sequence[SemanticMatch],
) -> ContextSummary:
    """Headline for *context_type* followed by the most relevant snippets.

    Semantic matches rank first (by similarity), then the latest cached
    turns, then the durable history.
    """
    has_recent = bool(short_term)
    has_similar = bool(semantic)
    lines = [_HEADLINES[context_type][(has_recent, has_similar)]]

    candidates = [m.message for m in semantic]
    candidates += list(reversed(short_term))
    candidates += list(medium_term)
    seen: set[str] = set()
    for message in candidates:
        if message.id in seen:
            continue
        seen.add(message.id)
        snippet = " ".join(message.content.split())
        if len(snippet) > SNIPPET_CHARS:
            snippet = snippet[: SNIPPET_CHARS - 3] + "..."
        lines.append(f"- {snippet}")
        if len(seen) >= SUMMARY_SNIPPETS:
            break

    return ContextSummary(
        has_recent_context=has_recent,
        has_similar_memories=has_similar,
        contextual_summary="\n".join(lines),
    )


# -- Orchestrator ----------------------------------------------------------------


class TieredMemoryOrchestrator:
    """Routes writes and reads across the cache, durable and semantic tiers.

    Shared instance accessed via ``TieredMemoryOrchestrator.get()``. Pass tiers
    explicitly for tests. A tier passed as ``None`` is disabled.
    """

    _instance: TieredMemoryOrchestrator | None = None

    def __init__(
        self,
        cache: MemoryTier | None,
        durable: MemoryTier,
        semantic: MemoryTier | None = None,
        *,
        tasks: BackgroundTasks | None = None,
        tier_timeout: float | None = None,
    ) -> None:
        self._tiers: dict[TierKind, MemoryTier | None] = {
            TierKind.CACHE: cache,
            TierKind.DURABLE: durable,
            TierKind.SEMANTIC: semantic,
        }
        self._tasks = tasks or BackgroundTasks()
        self._timeout = settings.tier_timeout_seconds if tier_timeout is None else tier_timeout

    @classmethod
    def get(cls) -> TieredMemoryOrchestrator:
        """Return the shared orchestrator, built from settings on first use."""
        if cls._instance is None:
            store = SQLiteMessageStore()
            semantic = None
            if settings.semantic_enabled:
                semantic = SemanticTier(OpenAIEmbeddingService(), SQLiteVectorIndex(), store)
            else:
                logger.info("No embedding key configured; semantic tier disabled")
            cls._instance = cls(
                CacheTier(
                    InMemoryCacheClient(
                        ttl_seconds=settings.cache_ttl_seconds,
                        max_messages=settings.cache_max_messages,
                    )
                ),
                DurableTier(store),
                semantic,
            )
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @property
    def tasks(self) -> BackgroundTasks:
        return self._tasks

    def _enabled(self) -> list[MemoryTier]:
        return [tier for tier in self._tiers.values() if tier is not None]

    # -- Write -------------------------------------------------------------------

    async def save_message(
        self, user_id: str, session_id: str, payload: MessagePayload
    ) -> SaveResult:
        """Store a message in every tier.

        Raises ``DataIntegrityError`` if an authoritative tier failed to store
        it. Other tier failures are logged and reported in the result.
        """
        if not user_id or not session_id:
            msg = "user_id and session_id are required"
            raise ValidationError(msg)
        if not payload.content.strip():
            msg = "Message content must not be empty"
            raise ValidationError(msg)

        message = StoredMessage.from_payload(user_id, session_id, payload)
        immediate = [t for t in self._enabled() if not t.deferred]
        deferred = [t for t in self._enabled() if t.deferred]

        outcomes = await asyncio.gather(
            *(asyncio.wait_for(t.write(message), self._timeout) for t in immediate),
            return_exceptions=True,
        )

        saved: dict[TierKind, bool] = {}
        for tier, outcome in zip(immediate, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if tier.authoritative:
                    if isinstance(outcome, DataIntegrityError):
                        raise outcome
                    msg = f"{tier.kind} write failed for message {message.id}"
                    raise DataIntegrityError(msg) from outcome
                logger.warning(
                    "%s write failed for %s, continuing: %s",
                    tier.kind,
                    user_id[:8],
                    outcome or type(outcome).__name__,
                )
                saved[tier.kind] = False
            else:
                saved[tier.kind] = True

        for tier in deferred:
            self._tasks.spawn(tier.write(message), name=f"{tier.kind}-write-{message.id}")

        logger.debug(
            "Saved message %s for %s (deferred tiers: %d)",
            message.id,
            user_id[:8],
            len(deferred),
        )
        return SaveResult(
            message=message,
            cache_saved=saved.get(TierKind.CACHE, False),
            durable_saved=saved.get(TierKind.DURABLE, False),
            embedding_scheduled=bool(deferred),
        )

    # -- Read --------------------------------------------------------------------

    async def _read(
        self, kind: TierKind, user_id: str, session_id: str, query: str, options: SearchOptions
    ) -> list[Any]:
        tier = self._tiers[kind]
        if tier is None:
            return []
        try:
            results = await asyncio.wait_for(
                tier.read(
                    user_id,
                    session_id,
                    query,
                    options.max_results,
                    options.similarity_threshold,
                ),
                self._timeout,
            )
        except TimeoutError:
            logger.warning("%s read timed out after %.1fs", kind, self._timeout)
            return []
        except AttuneError as exc:
            logger.warning("%s read failed, omitting tier: %s", kind, exc)
            return []
        except Exception:
            logger.exception("Unexpected %s read failure", kind)
            return []
        return list(results)

    async def search_memories(
        self,
        user_id: str,
        query: str,
        session_id: str,
        options: SearchOptions | None = None,
    ) -> UnifiedMemoryResult:
        """Query every enabled tier concurrently and merge the results."""
        options = options or SearchOptions()
        wanted = {
            TierKind.CACHE: options.include_short_term,
            TierKind.DURABLE: options.include_medium_term,
            TierKind.SEMANTIC: options.include_vector_search and bool(query.strip()),
        }
        kinds = [kind for kind, include in wanted.items() if include]
        lists = await asyncio.gather(
            *(self._read(kind, user_id, session_id, query, options) for kind in kinds)
        )
        found: dict[TierKind, list[Any]] = dict(zip(kinds, lists, strict=True))

        short_term = found.get(TierKind.CACHE, [])
        medium_term = found.get(TierKind.DURABLE, [])[: options.max_results]
        semantic = [
            m
            for m in found.get(TierKind.SEMANTIC, [])
            if m.similarity >= options.similarity_threshold
        ][: options.max_results]

        result = UnifiedMemoryResult(
            short_term=short_term,
            medium_term=medium_term,
            semantic=semantic,
            total_messages=len(short_term) + len(medium_term) + len(semantic),
            context=build_summary(options.context_type, short_term, medium_term, semantic),
        )
        logger.info(
            "Memory search for %s: short=%d medium=%d semantic=%d (%s)",
            user_id[:8],
            len(short_term),
            len(medium_term),
            len(semantic),
            options.context_type,
        )
        return result

    def analyze_context(
        self, message: str, recent_history: Sequence[StoredMessage] = ()
    ) -> ContextType:
        return classify_context(message, recent_history)

    # -- Maintenance -------------------------------------------------------------

    async def _status(self, kind: TierKind) -> TierStatus:
        tier = self._tiers[kind]
        if tier is None:
            return TierStatus(tier=kind, enabled=False)
        try:
            return await asyncio.wait_for(tier.status(), self._timeout)
        except TimeoutError:
            return TierStatus(tier=kind, reachable=False, error="status check timed out")
        except Exception as exc:
            logger.warning("%s status check failed: %s", kind, exc)
            return TierStatus(tier=kind, reachable=False, error=str(exc))

    async def get_system_status(self) -> SystemStatus:
        """Per-tier reachability. Never raises."""
        statuses = await asyncio.gather(*(self._status(kind) for kind in self._tiers))
        return SystemStatus(tiers=list(statuses))

    async def _cleanup(self, tier: MemoryTier, user_id: str) -> CleanupOutcome:
        try:
            return await tier.cleanup(user_id)
        except Exception as exc:
            logger.warning("%s cleanup failed for %s: %s", tier.kind, user_id[:8], exc)
            return CleanupOutcome(tier=tier.kind, error=str(exc))

    async def cleanup(self, user_id: str) -> CleanupReport:
        """Run each enabled tier's maintenance step independently."""
        outcomes = await asyncio.gather(
            *(self._cleanup(tier, user_id) for tier in self._enabled())
        )
        return CleanupReport(user_id=user_id, outcomes=list(outcomes))
