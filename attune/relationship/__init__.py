"""Relationship progress: state derivation, milestones and suggestions."""

from attune.relationship.assessors import HeuristicAssessor, InteractionAssessor
from attune.relationship.engine import INITIAL_STATE, RelationshipEngine
from attune.relationship.models import (
    EmotionReading,
    Interaction,
    Milestone,
    RelationshipState,
    RelationshipType,
    Suggestion,
)

__all__ = [
    "INITIAL_STATE",
    "EmotionReading",
    "HeuristicAssessor",
    "Interaction",
    "InteractionAssessor",
    "Milestone",
    "RelationshipEngine",
    "RelationshipState",
    "RelationshipType",
    "Suggestion",
]
