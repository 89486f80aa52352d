"""Message and status models shared by every storage tier."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

SPECIAL_MOMENT_INTENSITY = 0.8

POSITIVE_EMOTIONS = frozenset({"happiness", "joy", "excitement", "gratitude", "love", "pride"})
NEGATIVE_EMOTIONS = frozenset(
    {"sadness", "anger", "fear", "frustration", "disappointment", "anxiety"}
)
EMOTION_TAGS = (
    "嬉しい", "楽しい", "悲しい", "怒った", "不安", "心配",
    "感謝", "ありがとう", "好き", "嫌い", "すごい", "やばい",
)


class TierKind(StrEnum):
    CACHE = "cache"
    DURABLE = "durable"
    SEMANTIC = "semantic"


def emotion_valence(emotion: str | None) -> str:
    """Map an emotion label to positive / negative / neutral."""
    name = (emotion or "").lower()
    if name in POSITIVE_EMOTIONS:
        return "positive"
    if name in NEGATIVE_EMOTIONS:
        return "negative"
    return "neutral"


def emotion_tags(content: str) -> list[str]:
    lowered = content.lower()
    return [tag for tag in EMOTION_TAGS if tag in lowered]


class MessagePayload(BaseModel):
    """What a caller hands to ``save_message``."""

    content: str
    role: str = "user"  # "user" or "ai"
    emotion: str | None = None
    intensity: float | None = Field(default=None, ge=0, le=1)
    archetype: str = ""
    user_name: str | None = None
    conversation_id: str = ""


class StoredMessage(BaseModel):
    """A message as it is kept by the cache and durable tiers."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    session_id: str
    content: str
    role: str = "user"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    emotion: str | None = None
    intensity: float | None = None
    valence: str = "neutral"
    emotion_tags: list[str] = Field(default_factory=list)
    is_special_moment: bool = False
    archetype: str = ""
    user_name: str | None = None
    conversation_id: str = ""

    @classmethod
    def from_payload(
        cls, user_id: str, session_id: str, payload: MessagePayload
    ) -> StoredMessage:
        return cls(
            user_id=user_id,
            session_id=session_id,
            content=payload.content,
            role=payload.role,
            emotion=payload.emotion,
            intensity=payload.intensity,
            valence=emotion_valence(payload.emotion),
            emotion_tags=emotion_tags(payload.content),
            is_special_moment=(payload.intensity or 0) >= SPECIAL_MOMENT_INTENSITY,
            archetype=payload.archetype,
            user_name=payload.user_name,
            conversation_id=payload.conversation_id or session_id,
        )


class SemanticMatch(BaseModel):
    """A stored message returned by similarity search."""

    message: StoredMessage
    similarity: float


class TierStatus(BaseModel):
    """Health of one tier as seen by ``get_system_status``."""

    tier: TierKind
    enabled: bool = True
    reachable: bool = False
    error: str | None = None


class CleanupOutcome(BaseModel):
    """What one tier's cleanup pass did."""

    tier: TierKind
    affected: int = 0
    details: dict[str, int] = Field(default_factory=dict)
    error: str | None = None
