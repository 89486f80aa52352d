"""Shared test fixtures."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from attune.errors import ComputationError
from attune.orchestrator import TieredMemoryOrchestrator
from attune.tasks import BackgroundTasks
from attune.tiers.cache import CacheTier, InMemoryCacheClient
from attune.tiers.durable import DurableTier, SQLiteMessageStore
from attune.tiers.semantic import SemanticTier, SQLiteVectorIndex


class FakeEmbedder:
    """Character-histogram embeddings: identical text gives identical vectors."""

    def __init__(self, failures: int = 0) -> None:
        self.calls: list[str] = []
        self._failures = failures

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self._failures > 0:
            self._failures -= 1
            raise ComputationError("embedding backend unavailable")
        vector = [0.0] * 32
        for char in text.lower():
            vector[ord(char) % 32] += 1.0
        return vector


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def store(db_path: Path) -> SQLiteMessageStore:
    return SQLiteMessageStore(db_path=db_path)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def semantic(embedder: FakeEmbedder, store: SQLiteMessageStore, db_path: Path) -> SemanticTier:
    return SemanticTier(
        embedder,
        SQLiteVectorIndex(db_path=db_path),
        store,
        max_retries=3,
        retry_delay=0,
        batch_delay=0,
    )


@pytest.fixture
async def orchestrator(
    store: SQLiteMessageStore, semantic: SemanticTier
) -> AsyncIterator[TieredMemoryOrchestrator]:
    """Orchestrator over the reference adapters, all on a temp database."""
    orchestrator = TieredMemoryOrchestrator(
        CacheTier(InMemoryCacheClient()),
        DurableTier(store),
        semantic,
        tasks=BackgroundTasks(),
        tier_timeout=2.0,
    )
    yield orchestrator
    await orchestrator.tasks.drain()
