"""Relationship engine — derives relationship state from interaction history.

State is never kept between calls. ``track_progress`` recomputes it from the
most recent window of interactions every time, and milestone detection is a
comparison of two snapshots rather than a counter.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta

from attune.config import settings
from attune.errors import ValidationError
from attune.relationship.assessors import (
    CONSISTENCY_MAX,
    EMOTION_ACCURACY_MAX,
    RECALL_MAX,
    RELEVANCE_MAX,
    HeuristicAssessor,
    InteractionAssessor,
)
from attune.relationship.catalog import (
    STAGE_SUGGESTIONS,
    TYPE_MULTIPLIERS,
    TYPE_STAGE_SUGGESTIONS,
    WEAK_SPOT_FLOORS,
    WEAK_SPOT_SUGGESTIONS,
    milestones_for,
    stage_for,
)
from attune.relationship.lexicon import RelationshipLexicon, count_markers
from attune.relationship.models import (
    DIMENSIONS,
    PRIORITY_RANK,
    Interaction,
    Milestone,
    RelationshipState,
    RelationshipType,
    Suggestion,
)

logger = logging.getLogger(__name__)

SESSION_GAP = timedelta(minutes=30)
SESSION_MIN_GAPS = 3

INITIAL_STATE = RelationshipState(
    intimacy=5,
    trust=10,
    understanding=5,
    shared_experiences=0,
    emotional_connection=8,
)


def _bounded(value: float, upper: float) -> float:
    return max(0.0, min(upper, value))


def _chronological(interaction: Interaction) -> tuple:
    # Same-instant turns are ordered by content so input order never matters.
    return (interaction.timestamp, interaction.user_message, interaction.ai_response)


def _relationship_type(value: RelationshipType | str) -> RelationshipType:
    try:
        return RelationshipType(value)
    except ValueError as exc:
        msg = f"Unknown relationship type: {value!r}"
        raise ValidationError(msg) from exc


class RelationshipEngine:
    """Pure functions over an interaction window.

    Args:
        assessor: Scores per-turn response quality. Defaults to the
            deterministic ``HeuristicAssessor``.
        lexicon: Marker phrases for disclosure, empathy, topics, emotions.
        window: How many of the most recent interactions to consider.
            Defaults to ``settings.relationship_window``.
    """

    def __init__(
        self,
        assessor: InteractionAssessor | None = None,
        lexicon: RelationshipLexicon | None = None,
        window: int | None = None,
    ) -> None:
        self._lexicon = lexicon or RelationshipLexicon()
        self._assessor = assessor or HeuristicAssessor(self._lexicon)
        self._window = max(1, settings.relationship_window if window is None else window)

    # -- Progress --------------------------------------------------------------

    def track_progress(self, interactions: Sequence[Interaction]) -> RelationshipState:
        """Derive the relationship state from the most recent interactions."""
        if not interactions:
            return INITIAL_STATE

        for interaction in interactions:
            if not interaction.user_message.strip():
                msg = f"Interaction at {interaction.timestamp.isoformat()} has no user message"
                raise ValidationError(msg)

        recent = sorted(interactions, key=_chronological)[-self._window :]
        return RelationshipState.clamped(
            intimacy=self._intimacy(recent),
            trust=self._trust(recent),
            understanding=self._understanding(recent),
            shared_experiences=self._shared_experiences(recent),
            emotional_connection=self._emotional_connection(recent),
        )

    def _intimacy(self, interactions: Sequence[Interaction]) -> float:
        score = INITIAL_STATE.intimacy
        for interaction in interactions:
            score += min(len(interaction.user_message) / 200, 2)
            score += 3 * count_markers(interaction.user_message, self._lexicon.self_disclosure)
            score += 2 * count_markers(interaction.ai_response, self._lexicon.empathy)
        return score

    def _trust(self, interactions: Sequence[Interaction]) -> float:
        score = INITIAL_STATE.trust
        for interaction in interactions:
            score += 1.5 * _bounded(self._assessor.consistency(interaction), CONSISTENCY_MAX)
            if count_markers(interaction.user_message, self._lexicon.sensitive_topics):
                score += 4 * count_markers(
                    interaction.ai_response, self._lexicon.appropriate_response
                )
            if interaction.user_satisfaction is not None and interaction.user_satisfaction >= 4:
                score += 2
        return score

    def _understanding(self, interactions: Sequence[Interaction]) -> float:
        score = INITIAL_STATE.understanding
        for index, interaction in enumerate(interactions):
            accuracy = self._assessor.emotion_accuracy(interaction)
            relevance = self._assessor.contextual_relevance(interaction)
            recall = self._assessor.personal_recall(interaction, interactions[:index])
            score += 3 * _bounded(accuracy, EMOTION_ACCURACY_MAX)
            score += 2 * _bounded(relevance, RELEVANCE_MAX)
            score += 4 * _bounded(recall, RECALL_MAX)
        return score

    def _shared_experiences(self, interactions: Sequence[Interaction]) -> float:
        special = sum(
            1
            for i in interactions
            if count_markers(i.user_message, self._lexicon.special_moments)
        )
        topics = {
            topic
            for i in interactions
            for topic in self._lexicon.topics
            if topic.lower() in i.user_message.lower()
        }
        return (
            INITIAL_STATE.shared_experiences
            + 8 * special
            + 2 * self.count_sessions(interactions)
            + 5 * len(topics)
        )

    def _emotional_connection(self, interactions: Sequence[Interaction]) -> float:
        score = INITIAL_STATE.emotional_connection
        for interaction in interactions:
            emotion = interaction.emotion
            if emotion is None:
                continue
            score += 2 * emotion.intensity
            name = emotion.dominant_emotion.lower()
            if name in self._lexicon.positive_emotions:
                score += 3
            if name in self._lexicon.support_seeking_emotions:
                score += 4 * count_markers(interaction.ai_response, self._lexicon.support)
        return score

    @staticmethod
    def count_sessions(interactions: Sequence[Interaction]) -> int:
        """Count sustained sessions: runs of at least three gaps under 30 minutes."""
        sessions = 0
        run = 0
        for previous, current in zip(interactions, interactions[1:], strict=False):
            if current.timestamp - previous.timestamp < SESSION_GAP:
                run += 1
                continue
            if run >= SESSION_MIN_GAPS:
                sessions += 1
            run = 0
        if run >= SESSION_MIN_GAPS:
            sessions += 1
        return sessions

    # -- Type optimization -----------------------------------------------------

    @staticmethod
    def optimize_for_relationship_type(
        state: RelationshipState, relationship_type: RelationshipType | str
    ) -> RelationshipState:
        """Apply the per-type multiplier table, capping every dimension at 100."""
        factors = TYPE_MULTIPLIERS.get(_relationship_type(relationship_type), {})
        return RelationshipState.clamped(
            **{dim: getattr(state, dim) * factors.get(dim, 1.0) for dim in DIMENSIONS}
        )

    # -- Milestones ------------------------------------------------------------

    @staticmethod
    def check_milestones(
        previous: RelationshipState,
        current: RelationshipState,
        relationship_type: RelationshipType | str,
    ) -> list[Milestone]:
        """Milestones met by *current* but not by *previous*.

        A pure comparison: the same pair always yields the same list, and a
        milestone already met by *previous* is never reported again.
        """
        achieved = [
            milestone
            for milestone in milestones_for(_relationship_type(relationship_type))
            if milestone.is_met_by(current) and not milestone.is_met_by(previous)
        ]
        if achieved:
            logger.info("Milestones reached: %s", ", ".join(m.title for m in achieved))
        return achieved

    # -- Suggestions -----------------------------------------------------------

    @staticmethod
    def suggest_next_steps(
        state: RelationshipState,
        relationship_type: RelationshipType | str,
        interactions: Sequence[Interaction] = (),
    ) -> list[Suggestion]:
        """Stage suggestions plus weak-spot suggestions, highest priority first.

        *interactions* is accepted for assessors that want the recent turns;
        the built-in catalog only needs the state.
        """
        stage = stage_for(state.intimacy)
        rel_type = _relationship_type(relationship_type)

        suggestions: list[Suggestion] = list(STAGE_SUGGESTIONS[stage])
        suggestions.extend(TYPE_STAGE_SUGGESTIONS.get((rel_type, stage), ()))
        for dimension, floors in WEAK_SPOT_FLOORS.items():
            if getattr(state, dimension) < floors[stage]:
                suggestions.append(WEAK_SPOT_SUGGESTIONS[dimension])

        unique = list({s.title: s for s in suggestions}.values())
        logger.debug(
            "Suggested %d next steps (stage=%s, turns=%d)", len(unique), stage, len(interactions)
        )
        return sorted(unique, key=lambda s: PRIORITY_RANK[s.priority], reverse=True)
