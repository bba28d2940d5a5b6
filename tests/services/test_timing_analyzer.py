"""Tests for TimingAnalyzer: pauses, momentum and timing rules."""

from datetime import timedelta

import pytest

from src.core.config import TimingConfig
from src.domain.models.analysis import FlowAnalysis
from src.domain.models.enums import MomentumDirection, PauseType
from src.services.timing_analyzer import TimingAnalyzer


@pytest.fixture
def timing(clock):
    return TimingAnalyzer(TimingConfig(), clock=clock)


@pytest.fixture
def at_offsets(make_message, clock):
    """Messages at the given second offsets from the clock's start time."""
    start = clock.now

    def _make(*offsets, topics=None, content="Sounds good to me."):
        return [
            make_message(content, at=start + timedelta(seconds=s), topics=topics)
            for s in offsets
        ]

    return _make


def stable_flow(stability: float = 1.0) -> FlowAnalysis:
    return FlowAnalysis(current_topic="valuation", topic_stability=stability)


class TestPauseDetection:
    def test_extended_silence_detected_once(self, timing, at_offsets):
        pauses = timing.detect_conversation_pauses(at_offsets(0, 5, 245))

        assert len(pauses) == 1
        assert pauses[0].type == PauseType.EXTENDED_SILENCE
        assert pauses[0].confidence == 0.9
        assert pauses[0].duration_seconds == 240

    def test_gaps_below_short_threshold_ignored(self, timing, at_offsets):
        assert timing.detect_conversation_pauses(at_offsets(0, 5, 9)) == []

    @pytest.mark.parametrize(
        "gap,expected_type,expected_confidence",
        [
            (15, PauseType.NATURAL_BREAK, 0.4),
            (45, PauseType.NATURAL_BREAK, 0.6),
            (90, PauseType.THINKING_PAUSE, 0.7),
            (180, PauseType.EXTENDED_SILENCE, 0.9),
        ],
    )
    def test_pause_classification(
        self, timing, at_offsets, gap, expected_type, expected_confidence
    ):
        (pause,) = timing.detect_conversation_pauses(at_offsets(0, gap))

        assert pause.type == expected_type
        assert pause.confidence == expected_confidence

    def test_topic_transition_on_label_change(self, timing, make_message, clock):
        first = make_message(at=clock.now, topics=[("valuation", 0.9)])
        second = make_message(
            at=clock.now + timedelta(seconds=90), topics=[("exit_strategy", 0.9)]
        )

        (pause,) = timing.detect_conversation_pauses([first, second])

        assert pause.type == PauseType.TOPIC_TRANSITION
        assert pause.confidence == 0.8


class TestMomentum:
    def test_too_few_messages(self, timing, at_offsets):
        momentum = timing.calculate_conversation_momentum(at_offsets(0))

        assert momentum.velocity == 0.0
        assert momentum.direction == MomentumDirection.STABLE

    def test_messages_outside_window_ignored(self, timing, at_offsets, clock):
        messages = at_offsets(0, 10, 20)
        clock.advance(minutes=30)

        assert timing.calculate_conversation_momentum(messages).velocity == 0.0

    def test_velocity_in_messages_per_minute(self, timing, at_offsets, clock):
        messages = at_offsets(0, 30, 60)
        clock.advance(seconds=60)

        assert timing.calculate_conversation_momentum(messages).velocity == 3.0


class TestAssessInterventionTiming:
    def test_no_history_is_good_time(self, timing, make_context):
        result = timing.assess_intervention_timing(make_context(), stable_flow())

        assert result.is_good_time is True
        assert result.confidence == 0.8

    def test_high_momentum_waits(self, timing, make_context, at_offsets, clock):
        messages = at_offsets(*range(0, 20, 2))
        clock.set(messages[-1].timestamp)

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow()
        )

        assert result.is_good_time is False
        assert result.confidence == 0.8
        assert result.suggested_delay_seconds == 30

    def test_natural_break(self, timing, make_context, at_offsets, clock):
        messages = at_offsets(0, 45)
        clock.set(messages[-1].timestamp)

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow()
        )

        assert result.is_good_time is True
        assert result.reasoning == "Natural conversation break detected"
        assert result.confidence == 0.6

    def test_topic_instability(self, timing, make_context, at_offsets, clock):
        messages = at_offsets(0, 90)
        clock.set(messages[-1].timestamp)

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow(0.3)
        )

        assert result.is_good_time is True
        assert result.confidence == 0.7
        assert "instability" in result.reasoning

    def test_extended_silence_since_last_message(
        self, timing, make_context, at_offsets, clock
    ):
        messages = at_offsets(0, 90)
        clock.set(messages[-1].timestamp + timedelta(seconds=45))

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow()
        )

        assert result.is_good_time is True
        assert result.confidence == 0.75

    def test_low_momentum(self, timing, make_context, at_offsets, clock):
        messages = at_offsets(0, 90)
        clock.set(messages[-1].timestamp)

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow()
        )

        assert result.is_good_time is True
        assert result.reasoning == "Low conversation momentum allows for intervention"

    def test_moderate_conditions_suggest_short_wait(
        self, timing, make_context, at_offsets, clock
    ):
        messages = at_offsets(0, 60, 65, 70)
        clock.set(messages[-1].timestamp)

        result = timing.assess_intervention_timing(
            make_context(messages=messages), stable_flow()
        )

        assert result.is_good_time is False
        assert result.confidence == 0.5
        assert result.suggested_delay_seconds == 10


class TestParticipantsAndStrategy:
    def test_participant_engagement(self, timing, make_message, clock):
        messages = [
            make_message("Our revenue doubled last year", user_id="u1", at=clock.now),
            make_message("And margins improved", user_id="u1", at=clock.now + timedelta(seconds=20)),
        ]
        clock.advance(seconds=30)

        engaged, silent = timing.analyze_participant_engagement(messages, ["u1", "u2"])

        assert engaged.is_actively_engaged is True
        assert engaged.response_pattern.average_response_time_seconds == 20.0
        assert silent.is_actively_engaged is False
        assert silent.last_activity is None

    def test_urgent_strategy(self, timing, make_context):
        strategy = timing.determine_optimal_timing_strategy(make_context(), 0.9)

        assert strategy.should_wait_for_pause is False
        assert strategy.max_wait_seconds == 30
        assert strategy.preferred_timing_window.optimal_delay_seconds == 5

    def test_low_urgency_strategy_waits(self, timing, make_context):
        strategy = timing.determine_optimal_timing_strategy(make_context(), 0.3)

        assert strategy.should_wait_for_pause is True
        assert strategy.max_wait_seconds == 180
        assert strategy.preferred_timing_window.min_delay_seconds == 10
