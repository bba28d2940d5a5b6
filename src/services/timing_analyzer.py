"""
Pause and momentum analysis.

Answers "is now a good moment to speak?" from message timestamps alone:
pauses between consecutive messages, the velocity/acceleration of the
exchange inside a trailing window, per-participant engagement, and the wait
window appropriate for an intervention of a given urgency.

All computations are synchronous over small in-memory windows. The clock is
injectable so windows relative to "now" are deterministic in tests.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from src.core.config import TimingConfig, intervention_config
from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext
from src.domain.models.enums import MomentumDirection, PauseType
from src.domain.models.message import ProcessedMessage
from src.domain.models.timing import (
    ConversationMomentum,
    ConversationPause,
    InterventionTiming,
    ParticipantEngagement,
    PauseTimingStrategy,
    ResponsePattern,
    TimingWindow,
)

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _velocity(messages: Sequence[ProcessedMessage]) -> float:
    """Messages per minute across the span of messages."""
    if len(messages) < 2:
        return 0.0
    span = (messages[-1].timestamp - messages[0].timestamp).total_seconds()
    return len(messages) / (span / 60.0) if span > 0 else 0.0


def _population_variance(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


class TimingAnalyzer:
    """Detects pauses and momentum and judges intervention timing."""

    def __init__(
        self,
        config: Optional[TimingConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or intervention_config.timing
        self.clock = clock or utc_now

    # ------------------------------------------------------------------
    # Pauses
    # ------------------------------------------------------------------

    def detect_conversation_pauses(
        self, messages: Sequence[ProcessedMessage]
    ) -> List[ConversationPause]:
        """One pause per consecutive gap of at least the short-pause threshold."""
        pauses: List[ConversationPause] = []
        for previous, current in zip(messages, messages[1:]):
            gap = (current.timestamp - previous.timestamp).total_seconds()
            if gap >= self.config.short_pause_seconds:
                pauses.append(self._classify_pause(gap, previous, current))
        return pauses

    def _classify_pause(
        self, gap: float, previous: ProcessedMessage, current: ProcessedMessage
    ) -> ConversationPause:
        # Longest threshold first so extended silence is never shadowed.
        if gap >= self.config.extended_silence_seconds:
            pause_type, confidence = PauseType.EXTENDED_SILENCE, 0.9
        elif gap >= self.config.long_pause_seconds:
            if self._topic_changed(previous, current):
                pause_type, confidence = PauseType.TOPIC_TRANSITION, 0.8
            else:
                pause_type, confidence = PauseType.THINKING_PAUSE, 0.7
        elif gap >= self.config.medium_pause_seconds:
            pause_type, confidence = PauseType.NATURAL_BREAK, 0.6
        else:
            pause_type, confidence = PauseType.NATURAL_BREAK, 0.4

        return ConversationPause(
            start_time=previous.timestamp,
            end_time=current.timestamp,
            duration_seconds=gap,
            type=pause_type,
            confidence=confidence,
        )

    @staticmethod
    def _topic_changed(previous: ProcessedMessage, current: ProcessedMessage) -> bool:
        """True when under half of the bracketing messages' topic labels overlap."""
        previous_topics = [t.category for t in previous.topic_classification]
        current_topics = [t.category for t in current.topic_classification]
        largest = max(len(previous_topics), len(current_topics))
        if largest == 0:
            return False
        common = [topic for topic in previous_topics if topic in current_topics]
        return len(common) / largest < 0.5

    # ------------------------------------------------------------------
    # Momentum
    # ------------------------------------------------------------------

    def calculate_conversation_momentum(
        self, messages: Sequence[ProcessedMessage]
    ) -> ConversationMomentum:
        """Velocity, acceleration, engagement and intensity in the momentum window."""
        cutoff = self.clock().timestamp() - self.config.momentum_window_seconds
        recent = [m for m in messages if m.timestamp.timestamp() >= cutoff]
        if len(recent) < 2:
            return ConversationMomentum()

        velocity = _velocity(recent)

        middle = len(recent) // 2
        earlier, later = recent[:middle], recent[middle:]
        acceleration = 0.0
        if len(earlier) > 1 and len(later) > 1:
            acceleration = _velocity(later) - _velocity(earlier)

        participants = len({m.user_id for m in recent})
        average_sentiment = sum(m.sentiment.overall for m in recent) / len(recent)
        engagement = min(1.0, (participants / 4) * ((average_sentiment + 1) / 2))

        average_length = sum(len(m.content) for m in recent) / len(recent)
        intensity = (min(1.0, average_length / 200) + min(1.0, velocity / 10)) / 2

        if abs(acceleration) < 0.5:
            direction = MomentumDirection.STABLE
        elif acceleration > 0:
            direction = MomentumDirection.INCREASING
        else:
            direction = MomentumDirection.DECREASING

        return ConversationMomentum(
            velocity=round(velocity, 2),
            acceleration=round(acceleration, 2),
            engagement=round(engagement, 2),
            intensity=round(intensity, 2),
            direction=direction,
        )

    # ------------------------------------------------------------------
    # Timing assessment
    # ------------------------------------------------------------------

    def assess_intervention_timing(
        self, context: ConversationContext, flow_analysis: FlowAnalysis
    ) -> InterventionTiming:
        """Judge whether now is a good moment; first matching rule wins."""
        recent = context.message_history[-self.config.timing_window :]
        if not recent:
            return InterventionTiming(
                is_good_time=True,
                confidence=0.8,
                reasoning="No recent activity detected, safe to intervene",
            )

        pauses = self.detect_conversation_pauses(recent)
        last_pause = pauses[-1] if pauses else None
        momentum = self.calculate_conversation_momentum(recent)
        silence = (self.clock() - recent[-1].timestamp).total_seconds()

        timing = self._evaluate(momentum, flow_analysis, silence, last_pause)
        log.debug(
            "intervention_timing_assessed",
            session_id=context.session_id,
            is_good_time=timing.is_good_time,
            confidence=timing.confidence,
            reasoning=timing.reasoning,
        )
        return timing

    def _evaluate(
        self,
        momentum: ConversationMomentum,
        flow_analysis: FlowAnalysis,
        silence: float,
        last_pause: Optional[ConversationPause],
    ) -> InterventionTiming:
        suggested_delay: Optional[float] = None

        if momentum.velocity > 5 or momentum.intensity > 0.8:
            is_good_time, confidence = False, 0.8
            reasoning = "High conversation momentum - should wait for natural break"
            suggested_delay = self.config.medium_pause_seconds
        elif last_pause is not None and last_pause.type == PauseType.NATURAL_BREAK:
            is_good_time, confidence = True, max(0.6, last_pause.confidence)
            reasoning = "Natural conversation break detected"
        elif flow_analysis.topic_stability < 0.5:
            is_good_time, confidence = True, 0.7
            reasoning = "Topic instability suggests intervention opportunity"
        elif silence > self.config.medium_pause_seconds:
            is_good_time = True
            confidence = min(0.9, silence / self.config.long_pause_seconds)
            reasoning = "Extended silence provides intervention opportunity"
        elif momentum.velocity < 2 and momentum.intensity < 0.5:
            is_good_time, confidence = True, 0.7
            reasoning = "Low conversation momentum allows for intervention"
        else:
            is_good_time = silence > self.config.short_pause_seconds
            confidence = 0.5
            reasoning = "Moderate timing conditions"
            if not is_good_time:
                suggested_delay = self.config.short_pause_seconds - silence

        return InterventionTiming(
            is_good_time=is_good_time,
            confidence=round(confidence, 2),
            reasoning=reasoning,
            suggested_delay_seconds=suggested_delay,
            pause_detected=last_pause,
        )

    # ------------------------------------------------------------------
    # Participants and strategy
    # ------------------------------------------------------------------

    def analyze_participant_engagement(
        self, messages: Sequence[ProcessedMessage], participant_ids: Sequence[str]
    ) -> List[ParticipantEngagement]:
        """Per-participant response pattern over the engagement window."""
        now = self.clock()
        window = self.config.engagement_window_seconds
        recent = [
            m for m in messages if (now - m.timestamp).total_seconds() <= window
        ]

        results: List[ParticipantEngagement] = []
        for participant_id in participant_ids:
            own = [m for m in recent if m.user_id == participant_id]
            if not own:
                results.append(
                    ParticipantEngagement(
                        participant_id=participant_id, is_actively_engaged=False
                    )
                )
                continue

            last_activity = own[-1].timestamp
            idle = (now - last_activity).total_seconds()
            recently_active = idle < self.config.momentum_window_seconds

            response_times = [
                (b.timestamp - a.timestamp).total_seconds()
                for a, b in zip(own, own[1:])
            ]
            average_response = (
                sum(response_times) / len(response_times) if response_times else 0.0
            )
            average_length = sum(len(m.content) for m in own) / len(own)

            frequency = len(own) / (window / 60.0)
            activity_score = 1.0 if recently_active else max(0.0, 1 - idle / window)
            quality_score = min(1.0, average_length / 100)
            level = frequency * 0.4 + activity_score * 0.4 + quality_score * 0.2

            results.append(
                ParticipantEngagement(
                    participant_id=participant_id,
                    is_actively_engaged=recently_active and level > 0.3,
                    last_activity=last_activity,
                    response_pattern=ResponsePattern(
                        average_response_time_seconds=round(average_response, 2),
                        response_time_variance=round(
                            _population_variance(response_times), 2
                        ),
                        message_length=round(average_length),
                        recent_activity=recently_active,
                    ),
                    engagement_level=round(level, 2),
                )
            )
        return results

    def determine_optimal_timing_strategy(
        self, context: ConversationContext, urgency: float
    ) -> PauseTimingStrategy:
        """
        Choose a wait window for an intervention of the given urgency.

        Args:
            context: Session context
            urgency: Intervention urgency in [0, 1]
        """
        momentum = self.calculate_conversation_momentum(context.message_history)
        should_wait = urgency < 0.5 or momentum.velocity > 5 or momentum.intensity > 0.7

        if urgency > 0.8:
            max_wait, min_delay, optimal = 30.0, 2.0, 5.0
        elif urgency > 0.5:
            max_wait, min_delay, optimal = 60.0, 5.0, 15.0
        else:
            max_wait, min_delay, optimal = 180.0, 10.0, 30.0

        # Fast, accelerating exchanges get a longer window to find a gap.
        if momentum.direction == MomentumDirection.INCREASING and momentum.velocity > 3:
            max_wait *= 1.5
            optimal *= 1.3

        return PauseTimingStrategy(
            should_wait_for_pause=should_wait,
            max_wait_seconds=max_wait,
            intervention_urgency=urgency,
            preferred_timing_window=TimingWindow(
                min_delay_seconds=min_delay,
                max_delay_seconds=max_wait,
                optimal_delay_seconds=optimal,
            ),
        )
