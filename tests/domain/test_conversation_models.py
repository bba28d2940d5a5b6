"""Tests for conversation, message and intervention domain models."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from src.core.exceptions import FeedbackAlreadyRecordedError, InterventionHistoryError
from src.domain.models import (
    ConversationOutcome,
    EffectivenessScore,
    InterventionDecision,
    InterventionType,
    Priority,
    UserReaction,
    UserReactionType,
)


class TestProcessedMessage:
    def test_is_immutable(self, make_message):
        message = make_message("Revenue is up")

        with pytest.raises(ValidationError):
            message.urgency_level = "high"

    def test_exposes_original_fields(self, make_message):
        message = make_message("Hello", user_id="u7", message_id="abc")

        assert message.id == "abc"
        assert message.user_id == "u7"
        assert message.content == "Hello"

    def test_dominant_topic(self, make_message):
        message = make_message(topics=[("valuation", 0.6), ("market_analysis", 0.9)])

        assert message.dominant_topic().category == "market_analysis"
        assert make_message().dominant_topic() is None


class TestConversationContext:
    def test_primary_participant(self, make_context):
        assert make_context().primary_participant_id == "u1"
        assert make_context(participants=[]).primary_participant_id == "default"

    def test_get_participant(self, make_context):
        context = make_context()

        assert context.get_participant("u2").id == "u2"
        assert context.get_participant("nobody") is None

    def test_append_intervention_keeps_order(self, make_context, make_record, clock):
        context = make_context()
        context.append_intervention(make_record(clock.now))
        context.append_intervention(make_record(clock.now))

        with pytest.raises(InterventionHistoryError):
            context.append_intervention(make_record(clock.now - timedelta(seconds=1)))

        assert len(context.intervention_history) == 2


class TestInterventionRecord:
    def test_feedback_attached_once(self, make_record, clock):
        record = make_record(clock.now)
        reaction = UserReaction(type=UserReactionType.POSITIVE)
        score = EffectivenessScore(
            overall=0.9,
            timing=0.5,
            relevance=0.9,
            tone=0.8,
            outcome=ConversationOutcome.PROVIDED_VALUE,
        )

        record.attach_feedback(reaction, score)
        assert record.has_feedback

        with pytest.raises(FeedbackAlreadyRecordedError):
            record.attach_feedback(reaction, score)


class TestInterventionDecision:
    def test_no_intervention(self):
        decision = InterventionDecision.no_intervention("Too soon since last intervention")

        assert decision.should_respond is False
        assert decision.confidence == 0.0
        assert decision.priority == Priority.LOW
        assert decision.intervention_type == InterventionType.CLARIFICATION_REQUEST
        assert decision.reasoning == "Too soon since last intervention"

    def test_confidence_bounded(self):
        with pytest.raises(ValidationError):
            InterventionDecision(
                should_respond=True,
                intervention_type=InterventionType.FACT_CHECK,
                confidence=1.2,
                priority=Priority.HIGH,
                reasoning="x",
            )
