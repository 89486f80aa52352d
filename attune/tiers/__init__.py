"""Storage tiers consulted by the memory orchestrator."""

from attune.tiers.base import (
    CacheClient,
    DurableStoreClient,
    EmbeddingService,
    MemoryTier,
    VectorIndex,
)
from attune.tiers.cache import CacheTier, InMemoryCacheClient
from attune.tiers.durable import DurableTier, SQLiteMessageStore
from attune.tiers.models import (
    CleanupOutcome,
    MessagePayload,
    SemanticMatch,
    StoredMessage,
    TierKind,
    TierStatus,
    emotion_valence,
)
from attune.tiers.semantic import OpenAIEmbeddingService, SemanticTier, SQLiteVectorIndex

__all__ = [
    "CacheClient",
    "CacheTier",
    "CleanupOutcome",
    "DurableStoreClient",
    "DurableTier",
    "EmbeddingService",
    "InMemoryCacheClient",
    "MemoryTier",
    "MessagePayload",
    "OpenAIEmbeddingService",
    "SQLiteMessageStore",
    "SQLiteVectorIndex",
    "SemanticMatch",
    "SemanticTier",
    "StoredMessage",
    "TierKind",
    "TierStatus",
    "VectorIndex",
    "emotion_valence",
]
