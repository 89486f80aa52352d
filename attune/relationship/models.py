"""Data models for relationship progress tracking."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field

DIMENSIONS = (
    "intimacy",
    "trust",
    "understanding",
    "shared_experiences",
    "emotional_connection",
)

# Weights of each dimension in the overall level; they sum to 1.
OVERALL_WEIGHTS = {
    "intimacy": 0.25,
    "trust": 0.25,
    "understanding": 0.25,
    "shared_experiences": 0.125,
    "emotional_connection": 0.125,
}


class RelationshipType(StrEnum):
    FRIEND = "friend"
    COUNSELOR = "counselor"
    ROMANTIC = "romantic"
    MENTOR = "mentor"
    COMPANION = "companion"


class EmotionReading(BaseModel):
    """Dominant emotion detected for a turn, with intensity in [0, 1]."""

    dominant_emotion: str
    intensity: float = Field(default=0.0, ge=0, le=1)


class Interaction(BaseModel):
    """One conversational turn fed to the relationship engine."""

    timestamp: datetime
    user_message: str
    ai_response: str = ""
    emotion: EmotionReading | None = None
    duration: float = Field(default=0.0, ge=0)  # seconds
    user_satisfaction: int | None = Field(default=None, ge=1, le=5)
    relationship_type: RelationshipType = RelationshipType.FRIEND


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


class RelationshipState(BaseModel):
    """Five relationship dimensions, each in [0, 100].

    ``overall_level`` is derived, never stored, so it always equals the
    weighted sum of the dimensions.
    """

    model_config = ConfigDict(frozen=True)

    intimacy: float = Field(default=0.0, ge=0, le=100)
    trust: float = Field(default=0.0, ge=0, le=100)
    understanding: float = Field(default=0.0, ge=0, le=100)
    shared_experiences: float = Field(default=0.0, ge=0, le=100)
    emotional_connection: float = Field(default=0.0, ge=0, le=100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_level(self) -> float:
        return _clamp(sum(getattr(self, dim) * w for dim, w in OVERALL_WEIGHTS.items()))

    @classmethod
    def clamped(cls, **dimensions: float) -> RelationshipState:
        """Build a state, clamping every dimension into [0, 100]."""
        return cls(**{dim: _clamp(value) for dim, value in dimensions.items()})

    def stat(self, name: str) -> float:
        """Look up a dimension or ``overall_level`` by name."""
        if name == "overall_level":
            return self.overall_level
        if name not in DIMENSIONS:
            msg = f"Unknown relationship stat: {name}"
            raise KeyError(msg)
        return getattr(self, name)


class Milestone(BaseModel):
    """A catalog entry reached when every required stat is met."""

    model_config = ConfigDict(frozen=True)

    level: int
    title: str
    description: str
    unlocks: tuple[str, ...] = ()
    celebration_message: str = ""
    required_stats: dict[str, float]

    def is_met_by(self, state: RelationshipState) -> bool:
        return all(state.stat(name) >= required for name, required in self.required_stats.items())


class SuggestionPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_RANK = {
    SuggestionPriority.HIGH: 3,
    SuggestionPriority.MEDIUM: 2,
    SuggestionPriority.LOW: 1,
}


class Suggestion(BaseModel):
    """A proposed next step for deepening the relationship."""

    model_config = ConfigDict(frozen=True)

    type: str  # conversation, activity, memory, growth
    title: str
    description: str
    priority: SuggestionPriority
    estimated_impact: dict[str, float] = Field(default_factory=dict)
