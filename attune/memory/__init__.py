"""Memory scoring: dictionary, factory, weight engine and album helpers."""

from attune.memory.dictionary import KeywordDictionary
from attune.memory.factory import MemoryFactory
from attune.memory.models import ContextMeta, Memory, MemoryCategory
from attune.memory.weight import WeightConfig, WeightEngine

__all__ = [
    "ContextMeta",
    "KeywordDictionary",
    "Memory",
    "MemoryCategory",
    "MemoryFactory",
    "WeightConfig",
    "WeightEngine",
]
