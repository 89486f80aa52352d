"""Semantic tier — embedding generation and similarity search.

Embeddings are produced after the durable write, in the background, so this
tier is a read-only consumer on the request path. Embedding calls retry with
exponential backoff; when retries run out the call raises
``ComputationError`` and the orchestrator leaves this tier out.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

import aiosqlite
from openai import AsyncOpenAI, OpenAIError

from attune.config import settings
from attune.errors import ComputationError, ConnectivityError, ValidationError
from attune.tiers.models import (
    CleanupOutcome,
    SemanticMatch,
    StoredMessage,
    TierKind,
    TierStatus,
)

if TYPE_CHECKING:
    from pathlib import Path

    from attune.tiers.base import DurableStoreClient, EmbeddingService, VectorIndex

logger = logging.getLogger(__name__)

MAX_EMBEDDING_CHARS = 8000  # roughly the model's token limit
BACKLOG_BATCH_SIZE = 5

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS message_embeddings (
    message_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    record TEXT NOT NULL,
    vector TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 if either is empty or zero."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


# -- Backends ------------------------------------------------------------------


class OpenAIEmbeddingService:
    """Embeds text with the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model or settings.embedding_model
        if client is None:
            client = AsyncOpenAI(api_key=api_key or settings.openai_api_key)
        self._client = client

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            msg = "Cannot embed empty text"
            raise ValidationError(msg)
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=text[:MAX_EMBEDDING_CHARS],
            )
        except OpenAIError as exc:
            msg = f"Embedding request failed: {exc}"
            raise ComputationError(msg) from exc
        if not response.data:
            msg = "Embedding response contained no vectors"
            raise ComputationError(msg)
        return list(response.data[0].embedding)


class SQLiteVectorIndex:
    """Stores vectors next to the message they embed; cosine search in Python.

    Pass an explicit *db_path* for test isolation.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    async def upsert(self, message: StoredMessage, vector: Sequence[float]) -> None:
        try:
            db = await self._connect()
            try:
                await db.execute(
                    """
                    INSERT OR REPLACE INTO message_embeddings
                        (message_id, user_id, record, vector, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        message.id,
                        message.user_id,
                        message.model_dump_json(),
                        json.dumps(list(vector)),
                        message.created_at.isoformat(),
                    ),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise ConnectivityError(TierKind.SEMANTIC, str(exc)) from exc

    async def search(
        self, vector: Sequence[float], user_id: str, k: int, threshold: float
    ) -> list[SemanticMatch]:
        try:
            db = await self._connect()
            try:
                cursor = await db.execute(
                    "SELECT record, vector FROM message_embeddings WHERE user_id = ?",
                    (user_id,),
                )
                rows = await cursor.fetchall()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise ConnectivityError(TierKind.SEMANTIC, str(exc)) from exc

        matches = []
        for record, stored_vector in rows:
            similarity = cosine_similarity(vector, json.loads(stored_vector))
            if similarity >= threshold:
                matches.append(
                    SemanticMatch(
                        message=StoredMessage.model_validate_json(record),
                        similarity=round(similarity, 2),
                    )
                )
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[: max(0, k)]

    async def ping(self) -> bool:
        try:
            db = await self._connect()
            await db.close()
        except (aiosqlite.Error, OSError):
            logger.warning("Vector index ping failed", exc_info=True)
            return False
        return True


# -- Tier ------------------------------------------------------------------------


class SemanticTier:
    """Similarity tier fed by background embedding of durable messages."""

    kind = TierKind.SEMANTIC
    authoritative = False
    deferred = True

    def __init__(
        self,
        embedder: EmbeddingService,
        index: VectorIndex,
        durable: DurableStoreClient,
        *,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        batch_delay: float | None = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._durable = durable
        self._max_retries = max(1, max_retries or settings.embedding_max_retries)
        self._retry_delay = settings.embedding_retry_delay if retry_delay is None else retry_delay
        self._batch_delay = settings.embedding_batch_delay if batch_delay is None else batch_delay

    async def embed_with_retry(self, text: str) -> list[float]:
        """Embed *text*, retrying with exponential backoff.

        Raises ``ComputationError`` once every attempt has failed.
        """
        last_error: Exception | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                return await self._embedder.embed(text)
            except ValidationError:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Embedding attempt %d/%d failed: %s", attempt, self._max_retries, exc
                )
            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay * 2 ** (attempt - 1))
        msg = f"Embedding failed after {self._max_retries} attempts"
        raise ComputationError(msg) from last_error

    async def write(self, message: StoredMessage) -> None:
        """Embed and index *message*, then mark it embedded in the durable log."""
        vector = await self.embed_with_retry(message.content)
        await self._index.upsert(message, vector)
        await self._durable.mark_embedded(message.id)
        logger.debug("Indexed embedding for message %s", message.id)

    async def read(
        self, user_id: str, session_id: str, query: str, limit: int, threshold: float
    ) -> list[SemanticMatch]:
        if not query.strip():
            return []
        vector = await self.embed_with_retry(query)
        return await self._index.search(vector, user_id, limit, threshold)

    async def status(self) -> TierStatus:
        try:
            reachable = await self._index.ping()
        except Exception as exc:
            return TierStatus(tier=self.kind, reachable=False, error=str(exc))
        return TierStatus(tier=self.kind, reachable=reachable)

    async def vectorize_backlog(
        self, user_id: str, batch_size: int = BACKLOG_BATCH_SIZE
    ) -> dict[str, int]:
        """Embed durable messages that were never indexed, one at a time.

        Pauses ``batch_delay`` seconds between successive embedding calls.
        """
        stats = {"processed": 0, "success": 0, "failed": 0}
        pending = await self._durable.fetch_unembedded(user_id, batch_size)
        for index, message in enumerate(pending):
            if index and self._batch_delay:
                await asyncio.sleep(self._batch_delay)
            stats["processed"] += 1
            try:
                await self.write(message)
                stats["success"] += 1
            except Exception:
                logger.warning("Failed to vectorize message %s", message.id, exc_info=True)
                stats["failed"] += 1
        if pending:
            logger.info("Vectorization batch for %s: %s", user_id[:8], stats)
        return stats

    async def cleanup(self, user_id: str) -> CleanupOutcome:
        stats = await self.vectorize_backlog(user_id)
        return CleanupOutcome(tier=self.kind, affected=stats["success"], details=stats)
