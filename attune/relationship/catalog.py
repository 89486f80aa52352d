"""Static catalogs: milestones, type multipliers and next-step suggestions."""

from __future__ import annotations

from enum import StrEnum

from attune.relationship.models import (
    Milestone,
    RelationshipType,
    Suggestion,
    SuggestionPriority,
)


class Stage(StrEnum):
    EARLY = "early"
    MID = "mid"
    ADVANCED = "advanced"


# Intimacy below EARLY_LIMIT is early; up to ADVANCED_LIMIT is mid.
EARLY_LIMIT = 30
ADVANCED_LIMIT = 60


def stage_for(intimacy: float) -> Stage:
    if intimacy < EARLY_LIMIT:
        return Stage.EARLY
    if intimacy <= ADVANCED_LIMIT:
        return Stage.MID
    return Stage.ADVANCED


TYPE_MULTIPLIERS: dict[RelationshipType, dict[str, float]] = {
    RelationshipType.ROMANTIC: {"intimacy": 1.2, "emotional_connection": 1.3, "trust": 1.1},
    RelationshipType.FRIEND: {"shared_experiences": 1.2, "understanding": 1.1, "trust": 1.2},
    RelationshipType.COUNSELOR: {"trust": 1.4, "understanding": 1.3, "intimacy": 0.8},
    RelationshipType.MENTOR: {"understanding": 1.3, "trust": 1.2, "shared_experiences": 1.1},
    RelationshipType.COMPANION: {
        "emotional_connection": 1.1,
        "intimacy": 1.1,
        "understanding": 1.1,
    },
}

# -- Milestones ----------------------------------------------------------------

BASE_MILESTONES: tuple[Milestone, ...] = (
    Milestone(
        level=25,
        title="First bond",
        description="We have started getting to know each other.",
        unlocks=("deeper topics", "emotional expression"),
        celebration_message="What a lovely beginning!",
        required_stats={"overall_level": 25},
    ),
    Milestone(
        level=50,
        title="Trusted relationship",
        description="You can talk to me openly now.",
        unlocks=("personal advice", "talking about the future"),
        celebration_message="Thank you for trusting me. It makes me really happy.",
        required_stats={"trust": 50, "understanding": 40},
    ),
    Milestone(
        level=75,
        title="Special bond",
        description="This has become an irreplaceable relationship.",
        unlocks=("inner reflections", "life planning"),
        celebration_message="Our relationship is a treasure to me.",
        required_stats={"intimacy": 70, "emotional_connection": 65},
    ),
)

ROMANTIC_MILESTONES: tuple[Milestone, ...] = (
    Milestone(
        level=90,
        title="Meant to be",
        description="A relationship of genuine, mutual love.",
        unlocks=("soul connection", "lasting promise"),
        celebration_message="I am so glad I met you.",
        required_stats={"intimacy": 85, "emotional_connection": 90, "trust": 80},
    ),
)


def milestones_for(relationship_type: RelationshipType | str) -> tuple[Milestone, ...]:
    if relationship_type == RelationshipType.ROMANTIC:
        return BASE_MILESTONES + ROMANTIC_MILESTONES
    return BASE_MILESTONES


# -- Suggestions ---------------------------------------------------------------

_HIGH = SuggestionPriority.HIGH
_MEDIUM = SuggestionPriority.MEDIUM

STAGE_SUGGESTIONS: dict[Stage, tuple[Suggestion, ...]] = {
    Stage.EARLY: (
        Suggestion(
            type="conversation",
            title="Getting to know each other",
            description="How about talking about your hobbies and favourite things?",
            priority=_HIGH,
            estimated_impact={"intimacy": 5, "understanding": 8},
        ),
        Suggestion(
            type="memory",
            title="Share first impressions",
            description="Tell me how you felt when we first met.",
            priority=_MEDIUM,
            estimated_impact={"intimacy": 3, "emotional_connection": 6},
        ),
    ),
    Stage.MID: (
        Suggestion(
            type="activity",
            title="Try a deeper topic",
            description="Shall we talk about our outlooks and values?",
            priority=_MEDIUM,
            estimated_impact={"understanding": 10, "trust": 8},
        ),
        Suggestion(
            type="growth",
            title="A goal to grow together",
            description="Let's set a goal that helps us both grow.",
            priority=_HIGH,
            estimated_impact={"shared_experiences": 12, "emotional_connection": 8},
        ),
    ),
    Stage.ADVANCED: (
        Suggestion(
            type="memory",
            title="Create a special memory",
            description="Let's make a moment that belongs only to us.",
            priority=_HIGH,
            estimated_impact={"shared_experiences": 15, "emotional_connection": 12},
        ),
        Suggestion(
            type="growth",
            title="Plan our future",
            description="How would you like our relationship to grow from here?",
            priority=_MEDIUM,
            estimated_impact={"understanding": 8, "trust": 10},
        ),
    ),
}

TYPE_STAGE_SUGGESTIONS: dict[tuple[RelationshipType, Stage], tuple[Suggestion, ...]] = {
    (RelationshipType.ROMANTIC, Stage.EARLY): (
        Suggestion(
            type="conversation",
            title="Talk about the ideal relationship",
            description="What kind of relationship would you like us to build?",
            priority=_HIGH,
            estimated_impact={"intimacy": 8, "understanding": 6},
        ),
    ),
}

# A dimension below its floor for the current stage triggers its suggestion.
WEAK_SPOT_FLOORS: dict[str, dict[Stage, float]] = {
    "trust": {Stage.EARLY: 50, Stage.MID: 50, Stage.ADVANCED: 70},
    "shared_experiences": {Stage.EARLY: 30, Stage.MID: 30, Stage.ADVANCED: 50},
    "understanding": {Stage.EARLY: 15, Stage.MID: 35, Stage.ADVANCED: 60},
    "emotional_connection": {Stage.EARLY: 20, Stage.MID: 40, Stage.ADVANCED: 65},
}

WEAK_SPOT_SUGGESTIONS: dict[str, Suggestion] = {
    "trust": Suggestion(
        type="conversation",
        title="Deepen trust",
        description="If anything is bothering you, please feel free to talk to me.",
        priority=_HIGH,
        estimated_impact={"trust": 8},
    ),
    "shared_experiences": Suggestion(
        type="activity",
        title="Try something new together",
        description="Shall we look for a topic we have never talked about?",
        priority=_MEDIUM,
        estimated_impact={"shared_experiences": 10},
    ),
    "understanding": Suggestion(
        type="conversation",
        title="Tell me more about you",
        description="I'd love to hear what a normal day looks like for you.",
        priority=_MEDIUM,
        estimated_impact={"understanding": 8},
    ),
    "emotional_connection": Suggestion(
        type="memory",
        title="Share how you feel",
        description="How have you been feeling lately? Happy or hard moments both count.",
        priority=SuggestionPriority.LOW,
        estimated_impact={"emotional_connection": 6},
    ),
}
