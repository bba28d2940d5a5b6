"""Tests for ConversationContextTracker."""

from datetime import timedelta

import pytest

from src.core.config import ContextConfig
from src.core.exceptions import InterventionHistoryError
from src.domain.models.conversation import AgendaItem, Participant
from src.domain.models.enums import MeetingType
from src.services.context_tracker import ConversationContextTracker


@pytest.fixture
def tracker(clock):
    return ConversationContextTracker(
        "s1",
        participants=[Participant(id="u1"), Participant(id="u2")],
        config=ContextConfig(),
        clock=clock,
    )


class TestSetup:
    def test_defaults(self, tracker, clock):
        assert tracker.context.current_topic == "General Discussion"
        assert tracker.context.start_time == clock.now
        assert tracker.context.meeting_type == MeetingType.GENERAL_DISCUSSION
        assert tracker.get_participant_activity("u1").message_count == 0
        assert tracker.get_topic_history() == []

    def test_agenda_sets_initial_topic(self, clock):
        tracker = ConversationContextTracker(
            "s2",
            meeting_type=MeetingType.INVESTMENT_REVIEW,
            agenda=[AgendaItem(id="a1", title="Valuation"), AgendaItem(id="a2", title="Terms")],
            config=ContextConfig(),
            clock=clock,
        )

        assert tracker.context.current_topic == "Valuation"
        assert len(tracker.context.agenda) == 2


class TestMessages:
    def test_history_is_bounded(self, clock, make_message):
        tracker = ConversationContextTracker(
            "s1", config=ContextConfig(max_history_size=10), clock=clock
        )
        for _ in range(12):
            tracker.add_message(make_message())

        history = tracker.context.message_history
        assert len(history) == 10
        assert history[0].id == "m3"

    def test_recent_messages(self, tracker, make_message):
        for _ in range(4):
            tracker.add_message(make_message())

        assert [m.id for m in tracker.get_recent_messages(2)] == ["m3", "m4"]
        assert tracker.get_recent_messages(0) == []
        assert len(tracker.get_recent_messages()) == 4

    def test_participant_activity(self, tracker, make_message, clock):
        tracker.add_message(make_message(at=clock.now + timedelta(seconds=10), sentiment=1.0))
        tracker.add_message(make_message(at=clock.now + timedelta(seconds=40), sentiment=1.0))

        activity = tracker.get_participant_activity("u1")
        assert activity.message_count == 2
        assert activity.last_activity == clock.now + timedelta(seconds=40)
        assert activity.average_response_time_seconds == 15.0
        assert activity.sentiment_trend == pytest.approx(0.51)
        assert tracker.context.get_participant("u1").engagement_level > 0
        assert tracker.get_participant_activity("u2").message_count == 0

    def test_unknown_sender_has_no_activity(self, tracker, make_message):
        tracker.add_message(make_message(user_id="guest"))

        assert tracker.get_participant_activity("guest") is None
        assert len(tracker.context.message_history) == 1

    def test_time_window_and_idle(self, tracker, make_message, clock):
        assert tracker.is_conversation_idle(1) is True

        tracker.add_message(make_message(at=clock.now))
        assert tracker.is_conversation_idle(1) is False
        assert len(tracker.get_messages_in_time_window(5)) == 1

        clock.advance(minutes=6)
        assert tracker.is_conversation_idle(1) is True
        assert tracker.get_messages_in_time_window(5) == []


class TestTopics:
    def test_confident_label_changes_topic(self, tracker, make_message):
        message = make_message(topics=[("valuation", 0.9), ("market_analysis", 0.4)])

        tracker.add_message(message)

        (change,) = tracker.get_topic_history()
        assert change.previous_topic == "General Discussion"
        assert change.new_topic == "valuation"
        assert change.trigger_message_id == message.id
        assert change.timestamp == message.timestamp
        assert tracker.last_topic_change == message.timestamp
        assert tracker.context.current_topic == "valuation"

    def test_weak_or_repeated_label_ignored(self, tracker, make_message):
        tracker.add_message(make_message(topics=[("valuation", 0.6)]))
        assert tracker.get_topic_history() == []

        tracker.add_message(make_message(topics=[("valuation", 0.9)]))
        tracker.add_message(make_message(topics=[("valuation", 0.95)]))
        assert len(tracker.get_topic_history()) == 1

    def test_manual_topic_update(self, tracker, clock):
        tracker.update_current_topic("Exit strategy")
        tracker.update_current_topic("Exit strategy")

        (change,) = tracker.get_topic_history()
        assert change.trigger_message_id == "manual"
        assert change.confidence == 1.0
        assert change.timestamp == clock.now


class TestMomentumAndStats:
    def test_momentum(self, tracker, make_message, clock):
        for user_id in ("u1", "u2", "u1", "u2", "u1"):
            tracker.add_message(make_message(user_id=user_id))
        clock.advance(minutes=1)

        assert tracker.momentum == pytest.approx((1 / 3 + 0.5 + 1.0) / 3)

    def test_empty_momentum(self, tracker):
        assert tracker.momentum == 0.0

    def test_stats(self, tracker, make_message, make_record, clock):
        for _ in range(3):
            tracker.add_message(make_message())
        tracker.add_intervention(make_record(clock.now + timedelta(minutes=1)))
        clock.advance(minutes=30)

        stats = tracker.get_conversation_stats()

        assert stats["total_messages"] == 3
        assert stats["duration_minutes"] == 30.0
        assert stats["messages_per_minute"] == pytest.approx(0.1)
        assert stats["participant_count"] == 2
        assert stats["topic_changes"] == 0
        assert stats["interventions"] == 1

    def test_short_session_rate_uses_one_minute_floor(self, tracker, make_message):
        tracker.add_message(make_message())
        tracker.add_message(make_message())

        assert tracker.get_conversation_stats()["messages_per_minute"] == 2.0

    def test_out_of_order_intervention_rejected(self, tracker, make_record, clock):
        tracker.add_intervention(make_record(clock.now))

        with pytest.raises(InterventionHistoryError):
            tracker.add_intervention(make_record(clock.now - timedelta(seconds=1)))
