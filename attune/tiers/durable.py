"""Durable tier — append-only aiosqlite message log, the source of truth."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite

from attune.config import settings
from attune.errors import ConnectivityError, DataIntegrityError
from attune.tiers.models import CleanupOutcome, StoredMessage, TierKind, TierStatus

if TYPE_CHECKING:
    from pathlib import Path

    from attune.tiers.base import DurableStoreClient

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    emotion TEXT,
    intensity REAL,
    valence TEXT NOT NULL DEFAULT 'neutral',
    emotion_tags TEXT NOT NULL DEFAULT '[]',
    is_special_moment INTEGER NOT NULL DEFAULT 0,
    archetype TEXT NOT NULL DEFAULT '',
    user_name TEXT,
    conversation_id TEXT NOT NULL DEFAULT '',
    embedded_at TEXT
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_messages_session ON messages (session_id, created_at)
"""

_COLUMNS = (
    "id, user_id, session_id, role, content, created_at, emotion, intensity, valence, "
    "emotion_tags, is_special_moment, archetype, user_name, conversation_id"
)


def _to_row(message: StoredMessage) -> tuple:
    return (
        message.id,
        message.user_id,
        message.session_id,
        message.role,
        message.content,
        message.created_at.isoformat(),
        message.emotion,
        message.intensity,
        message.valence,
        json.dumps(message.emotion_tags, ensure_ascii=False),
        int(message.is_special_moment),
        message.archetype,
        message.user_name,
        message.conversation_id,
    )


def _from_row(row: tuple) -> StoredMessage:
    return StoredMessage(
        id=row[0],
        user_id=row[1],
        session_id=row[2],
        role=row[3],
        content=row[4],
        created_at=datetime.fromisoformat(row[5]),
        emotion=row[6],
        intensity=row[7],
        valence=row[8],
        emotion_tags=json.loads(row[9] or "[]"),
        is_special_moment=bool(row[10]),
        archetype=row[11] or "",
        user_name=row[12],
        conversation_id=row[13] or "",
    )


class SQLiteMessageStore:
    """Persists every message in SQLite.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    Rows are only ever inserted; the single update marks a row as embedded.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.commit()
            self._initialised = True
        return db

    # -- Write -----------------------------------------------------------------

    async def append_message(self, user_id: str, session_id: str, message: StoredMessage) -> str:
        """Insert *message*. Raises ``DataIntegrityError`` if it was not stored."""
        if message.user_id != user_id or message.session_id != session_id:
            msg = f"Message {message.id} does not belong to {user_id[:8]}/{session_id[:8]}"
            raise DataIntegrityError(msg)
        try:
            db = await self._connect()
            try:
                await db.execute(
                    f"INSERT INTO messages ({_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _to_row(message),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to append message {message.id}"
            raise DataIntegrityError(msg) from exc
        logger.debug("Appended message %s to session %s", message.id, session_id[:8])
        return message.id

    async def mark_embedded(self, message_id: str) -> None:
        try:
            db = await self._connect()
            try:
                await db.execute(
                    "UPDATE messages SET embedded_at = ? WHERE id = ?",
                    (datetime.now(UTC).isoformat(), message_id),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise ConnectivityError(TierKind.DURABLE, str(exc)) from exc

    # -- Read ------------------------------------------------------------------

    async def _select(self, sql: str, params: tuple) -> list[StoredMessage]:
        try:
            db = await self._connect()
            try:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise ConnectivityError(TierKind.DURABLE, str(exc)) from exc
        return [_from_row(tuple(row)) for row in rows]

    async def fetch_messages(self, session_id: str, limit: int | None = None) -> list[StoredMessage]:
        """Newest-first messages of a session."""
        return await self._select(
            f"SELECT {_COLUMNS} FROM messages WHERE session_id = ? "
            "ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (session_id, -1 if limit is None else limit),
        )

    async def fetch_unembedded(self, user_id: str, limit: int) -> list[StoredMessage]:
        return await self._select(
            f"SELECT {_COLUMNS} FROM messages "
            "WHERE user_id = ? AND embedded_at IS NULL AND content != '' "
            "ORDER BY created_at, rowid LIMIT ?",
            (user_id, limit),
        )

    async def ping(self) -> bool:
        try:
            db = await self._connect()
            try:
                await db.execute("SELECT 1")
            finally:
                await db.close()
        except (aiosqlite.Error, OSError):
            logger.warning("Durable store ping failed", exc_info=True)
            return False
        return True


class DurableTier:
    """Authoritative tier over a ``DurableStoreClient``."""

    kind = TierKind.DURABLE
    authoritative = True
    deferred = False

    def __init__(self, client: DurableStoreClient) -> None:
        self._client = client

    @property
    def client(self) -> DurableStoreClient:
        return self._client

    async def write(self, message: StoredMessage) -> None:
        try:
            await self._client.append_message(message.user_id, message.session_id, message)
        except DataIntegrityError:
            raise
        except Exception as exc:
            msg = f"Durable write failed for message {message.id}"
            raise DataIntegrityError(msg) from exc

    async def read(
        self, user_id: str, session_id: str, query: str, limit: int, threshold: float
    ) -> list[StoredMessage]:
        messages = await self._client.fetch_messages(session_id, limit=limit)
        return [m for m in messages if m.user_id == user_id]

    async def status(self) -> TierStatus:
        try:
            reachable = await self._client.ping()
        except Exception as exc:
            return TierStatus(tier=self.kind, reachable=False, error=str(exc))
        return TierStatus(tier=self.kind, reachable=reachable)

    async def cleanup(self, user_id: str) -> CleanupOutcome:
        # Source of truth: nothing is ever purged here.
        return CleanupOutcome(tier=self.kind)
