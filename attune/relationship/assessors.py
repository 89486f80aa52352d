"""Per-interaction quality assessors used by the relationship engine.

Four sub-scores have no ground truth available inside the engine: response
consistency, emotion accuracy, contextual relevance and recall of personal
details. They sit behind the ``InteractionAssessor`` protocol so a model-
backed scorer can be plugged in. ``HeuristicAssessor`` is the deterministic
default:

- consistency (0-3): 1 for any reply, +1 when the reply length is between
  half and five times the user message, +1 unless the user reported a
  satisfaction below 3.
- emotion accuracy (0-4): 2 per reply marker that fits the valence of the
  detected emotion (positive markers for positive emotions, support markers
  for support-seeking ones), 1 for a neutral emotion with any reply, 0
  without an emotion reading.
- contextual relevance (0-3): share of the user message's character bigrams
  that reappear in the reply, scaled to 3.
- personal recall (0-2): topics the user raised in earlier turns that the
  reply brings up again, one point each.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from attune.relationship.lexicon import RelationshipLexicon, count_markers
from attune.relationship.models import Interaction

CONSISTENCY_MAX = 3.0
EMOTION_ACCURACY_MAX = 4.0
RELEVANCE_MAX = 3.0
RECALL_MAX = 2.0


@runtime_checkable
class InteractionAssessor(Protocol):
    """Scores the quality of a single turn on fixed ranges."""

    def consistency(self, interaction: Interaction) -> float:
        """Score in [0, 3]."""
        ...

    def emotion_accuracy(self, interaction: Interaction) -> float:
        """Score in [0, 4]."""
        ...

    def contextual_relevance(self, interaction: Interaction) -> float:
        """Score in [0, 3]."""
        ...

    def personal_recall(self, interaction: Interaction, earlier: Sequence[Interaction]) -> float:
        """Score in [0, 2]."""
        ...


def _bigrams(text: str) -> set[str]:
    compact = "".join(text.lower().split())
    return {compact[i : i + 2] for i in range(len(compact) - 1)}


class HeuristicAssessor:
    """Deterministic marker- and overlap-based assessor."""

    def __init__(self, lexicon: RelationshipLexicon | None = None) -> None:
        self._lexicon = lexicon or RelationshipLexicon()

    def consistency(self, interaction: Interaction) -> float:
        reply = interaction.ai_response.strip()
        if not reply:
            return 0.0
        score = 1.0
        ratio = len(reply) / max(1, len(interaction.user_message))
        if 0.5 <= ratio <= 5:
            score += 1
        if interaction.user_satisfaction is None or interaction.user_satisfaction >= 3:
            score += 1
        return score

    def emotion_accuracy(self, interaction: Interaction) -> float:
        emotion = interaction.emotion
        if emotion is None or not interaction.ai_response.strip():
            return 0.0
        name = emotion.dominant_emotion.lower()
        if name in self._lexicon.positive_emotions:
            markers = self._lexicon.positive_response
        elif name in self._lexicon.support_seeking_emotions:
            markers = self._lexicon.support
        else:
            return 1.0
        return min(EMOTION_ACCURACY_MAX, 2.0 * count_markers(interaction.ai_response, markers))

    def contextual_relevance(self, interaction: Interaction) -> float:
        asked = _bigrams(interaction.user_message)
        if not asked:
            return 0.0
        shared = asked & _bigrams(interaction.ai_response)
        return RELEVANCE_MAX * len(shared) / len(asked)

    def personal_recall(self, interaction: Interaction, earlier: Sequence[Interaction]) -> float:
        raised = {
            topic
            for past in earlier
            for topic in self._lexicon.topics
            if topic.lower() in past.user_message.lower()
        }
        recalled = count_markers(interaction.ai_response, raised)
        return min(RECALL_MAX, float(recalled))
