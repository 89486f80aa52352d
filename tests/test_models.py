"""Tests for memory, relationship and message models."""

import pydantic
import pytest

from attune.memory.models import Memory
from attune.relationship.models import Milestone, RelationshipState
from attune.tiers.models import MessagePayload, StoredMessage, emotion_valence


class TestMemory:
    def test_record_reference(self):
        memory = Memory(content="x", original_message="x", emotion_score=3)
        assert memory.record_reference() == 1
        assert memory.record_reference() == 2

    def test_score_out_of_range(self):
        with pytest.raises(pydantic.ValidationError):
            Memory(content="x", original_message="x", emotion_score=11)

    def test_month_key(self):
        memory = Memory(content="x", original_message="x", emotion_score=3)
        assert memory.month_key == memory.timestamp.strftime("%Y-%m")


class TestRelationshipState:
    def test_overall_is_derived(self):
        state = RelationshipState(
            intimacy=40, trust=60, understanding=20, shared_experiences=80, emotional_connection=16
        )
        assert state.overall_level == pytest.approx(10 + 15 + 5 + 10 + 2)
        assert state.model_dump()["overall_level"] == pytest.approx(42)

    def test_clamped(self):
        state = RelationshipState.clamped(intimacy=140, trust=-5)
        assert state.intimacy == 100
        assert state.trust == 0

    def test_rejects_out_of_range(self):
        with pytest.raises(pydantic.ValidationError):
            RelationshipState(trust=101)

    def test_stat_lookup(self):
        state = RelationshipState(trust=30)
        assert state.stat("trust") == 30
        with pytest.raises(KeyError):
            state.stat("charisma")

    def test_milestone_requires_every_stat(self):
        milestone = Milestone(
            level=50, title="t", description="d", required_stats={"trust": 50, "understanding": 40}
        )
        assert milestone.is_met_by(RelationshipState(trust=50, understanding=40))
        assert not milestone.is_met_by(RelationshipState(trust=90, understanding=39))


class TestStoredMessage:
    def test_from_payload(self):
        payload = MessagePayload(content="ありがとう", emotion="sadness", intensity=0.3)
        message = StoredMessage.from_payload("u1", "s1", payload)
        assert message.valence == "negative"
        assert message.emotion_tags == ["ありがとう"]
        assert message.is_special_moment is False
        assert message.conversation_id == "s1"

    def test_intensity_bounds(self):
        with pytest.raises(pydantic.ValidationError):
            MessagePayload(content="x", intensity=1.5)

    def test_valence(self):
        assert emotion_valence("Joy") == "positive"
        assert emotion_valence(None) == "neutral"
        assert emotion_valence("curiosity") == "neutral"
