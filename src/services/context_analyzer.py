"""
Conversation signal aggregation.

Turns the tail of a session's message history into the signals the decision
engine scores against:
- FlowAnalysis: current topic, topic stability, engagement, momentum and the
  run of consecutive off-topic messages
- TopicDriftResult: whether the conversation has left its original topic,
  and how urgently to steer it back
- Information gaps, conversation health and redirection strategies, on demand

Topic labels, relevance ratings and drift verdicts come from an injected
ITextAnalyzer. Any AnalysisError it raises is absorbed here into a neutral
value (default topic, on-topic, not drifting) so one failed call never
blocks an evaluation.
"""

from collections import Counter
from typing import List, Optional, Sequence

import structlog
from pydantic import ValidationError

from src.core.config import AnalyzerConfig, intervention_config
from src.core.exceptions import AnalysisError, LLMResponseParseError
from src.domain.models.analysis import (
    ConversationHealth,
    DriftAnalysis,
    EngagementMetrics,
    FlowAnalysis,
    InformationGap,
    MomentumIndicator,
    RedirectionStrategy,
    TopicDriftResult,
)
from src.domain.models.conversation import ConversationContext
from src.domain.models.enums import MomentumDirection, RedirectionApproach, UrgencyLevel
from src.domain.models.message import ProcessedMessage
from src.llm.prompts.analysis import (
    coerce_unit_float,
    get_focus_prompt,
    get_information_gaps_prompt,
    get_productivity_prompt,
    get_redirection_prompt,
    parse_json_array,
    parse_json_object,
    parse_score,
)
from src.services.protocols import ITextAnalyzer

log = structlog.get_logger(__name__)

NEUTRAL_RATING = 0.5


def conversation_text(messages: Sequence[ProcessedMessage]) -> str:
    """Render messages as 'user: content' lines for the analysis service."""
    return "\n".join(f"{m.user_id}: {m.content}" for m in messages)


def _span_minutes(messages: Sequence[ProcessedMessage]) -> float:
    if len(messages) < 2:
        return 0.0
    return (messages[-1].timestamp - messages[0].timestamp).total_seconds() / 60.0


def _frequency(messages: Sequence[ProcessedMessage]) -> float:
    """Messages per minute across the span of messages; 0 for a zero span."""
    span = _span_minutes(messages)
    return len(messages) / span if span > 0 else 0.0


class ContextAnalyzer:
    """
    Aggregates per-conversation signals from message history.

    Stateless apart from configuration; safe to share across sessions.
    """

    def __init__(
        self,
        text_analyzer: ITextAnalyzer,
        config: Optional[AnalyzerConfig] = None,
    ):
        """
        Args:
            text_analyzer: Topic/relevance/drift service
            config: Analyzer windows and thresholds (defaults to YAML config)
        """
        self.text_analyzer = text_analyzer
        self.config = config or intervention_config.analyzer

    # ------------------------------------------------------------------
    # Guarded calls into the text analyzer
    # ------------------------------------------------------------------

    async def _classify(self, messages: Sequence[ProcessedMessage]) -> str:
        try:
            topic = await self.text_analyzer.classify_topic(conversation_text(messages))
        except AnalysisError as e:
            log.warning("topic_classification_degraded", error=str(e))
            return self.config.default_topic
        return topic if topic in self.config.topics else self.config.default_topic

    async def _relevance(self, text: str) -> Optional[float]:
        """Relevance in [0, 1], or None when it could not be scored."""
        try:
            score = await self.text_analyzer.score_relevance(text)
        except AnalysisError as e:
            log.warning("relevance_scoring_degraded", error=str(e))
            return None
        return max(0.0, min(1.0, score))

    async def _rating(self, text: str, prompt: str, operation: str) -> float:
        try:
            reply = await self.text_analyzer.analyze_text(text, prompt)
        except AnalysisError as e:
            log.warning("rating_degraded", operation=operation, error=str(e))
            return NEUTRAL_RATING
        return parse_score(reply, default=NEUTRAL_RATING)

    # ------------------------------------------------------------------
    # Flow analysis
    # ------------------------------------------------------------------

    async def analyze_conversation_flow(
        self, history: Sequence[ProcessedMessage]
    ) -> FlowAnalysis:
        """
        Aggregate current signals from the message history.

        Args:
            history: Full message history, oldest first

        Returns:
            FlowAnalysis; a neutral analysis for an empty history
        """
        if not history:
            return FlowAnalysis(
                current_topic=self.config.default_topic, topic_stability=1.0
            )

        recent = list(history[-self.config.flow_window :])

        current_topic = await self._classify(recent)
        topic_stability = await self.calculate_topic_stability(history)
        engagement = self.analyze_participant_engagement(recent)
        momentum = self.calculate_momentum_indicator(recent)
        messages_off_topic = await self.count_consecutive_off_topic(recent)

        analysis = FlowAnalysis(
            current_topic=current_topic,
            topic_stability=topic_stability,
            participant_engagement=engagement,
            conversation_momentum=momentum,
            messages_off_topic=messages_off_topic,
            intervention_recommended=(
                messages_off_topic >= self.config.drift_detection_window
            ),
        )

        log.debug(
            "flow_analyzed",
            current_topic=current_topic,
            topic_stability=topic_stability,
            momentum=momentum.direction.value,
            messages_off_topic=messages_off_topic,
        )
        return analysis

    async def calculate_topic_stability(
        self, history: Sequence[ProcessedMessage]
    ) -> float:
        """Fraction of fixed-size windows whose topic matches the newest window's."""
        size = self.config.stability_window_size
        if len(history) < size:
            return 1.0

        # Windows are aligned from the start; a trailing partial window is ignored.
        bounds = list(range(size, len(history) + 1, size))
        bounds = bounds[-self.config.stability_max_windows :]
        if len(bounds) < 2:
            return 1.0

        topics: List[str] = []
        for end in bounds:
            topics.append(await self._classify(history[end - size : end]))

        latest = topics[-1]
        return sum(1 for topic in topics if topic == latest) / len(topics)

    def analyze_participant_engagement(
        self, messages: Sequence[ProcessedMessage]
    ) -> EngagementMetrics:
        if not messages:
            return EngagementMetrics(participation_balance=0.0)

        gaps = [
            (messages[i].timestamp - messages[i - 1].timestamp).total_seconds()
            for i in range(1, len(messages))
        ]
        average_gap = sum(gaps) / len(gaps) if gaps else 0.0

        counts = Counter(m.user_id for m in messages).values()
        balance = min(counts) / max(counts)

        return EngagementMetrics(
            average_response_time_seconds=round(max(average_gap, 0.0), 2),
            message_frequency=round(_frequency(messages), 2),
            participation_balance=round(balance, 2),
        )

    def calculate_momentum_indicator(
        self, messages: Sequence[ProcessedMessage]
    ) -> MomentumIndicator:
        """Compare message frequency of the last two windows of ~n/3 messages."""
        if len(messages) < 3:
            return MomentumIndicator(direction=MomentumDirection.STABLE, strength=0.0)

        size = max(2, len(messages) // 3)
        frequencies = [
            _frequency(messages[end - size : end])
            for end in range(size, len(messages) + 1, size)
        ]
        if len(frequencies) < 2:
            return MomentumIndicator(direction=MomentumDirection.STABLE, strength=0.5)

        recent, previous = frequencies[-1], frequencies[-2]
        change = recent - previous
        change_ratio = abs(change) / previous if previous > 0 else 0.0

        if change_ratio < 0.2:
            direction = MomentumDirection.STABLE
        elif change > 0:
            direction = MomentumDirection.INCREASING
        else:
            direction = MomentumDirection.DECREASING

        return MomentumIndicator(
            direction=direction, strength=round(min(1.0, change_ratio), 2)
        )

    async def count_consecutive_off_topic(
        self, messages: Sequence[ProcessedMessage]
    ) -> int:
        """
        Count off-topic messages walking back from the newest.

        Stops at the first on-topic message, or at the first message whose
        relevance could not be scored (treated as on-topic).
        """
        count = 0
        for message in reversed(messages):
            try:
                score = await self.text_analyzer.score_relevance(message.content)
            except AnalysisError as e:
                log.warning(
                    "off_topic_count_stopped", message_id=message.id, error=str(e)
                )
                break
            if score >= self.config.relevance_threshold:
                break
            count += 1
        return count

    # ------------------------------------------------------------------
    # Drift
    # ------------------------------------------------------------------

    async def detect_topic_drift(
        self, messages: Sequence[ProcessedMessage]
    ) -> TopicDriftResult:
        """
        Decide whether the conversation drifted from its original topic.

        The original topic comes from the earlier half of the messages (at
        least 3), the current direction from the last drift-window messages.
        """
        window = self.config.drift_detection_window
        if len(messages) < window:
            return TopicDriftResult(
                is_drifting=False,
                original_topic="insufficient_data",
                current_direction="unknown",
                drift_severity=0.0,
                messages_off_topic=0,
            )

        earlier = list(messages[: max(3, len(messages) // 2)])
        recent = list(messages[-window:])

        original_topic = await self._classify(earlier)
        current_direction = await self._classify(recent)
        messages_off_topic = await self.count_consecutive_off_topic(messages)
        relevance = await self._relevance(conversation_text(recent))

        # An unscored aggregate counts as on-topic.
        is_drifting = (
            messages_off_topic >= window
            and relevance is not None
            and relevance < self.config.relevance_threshold
        )

        try:
            drift = await self.text_analyzer.analyze_drift(
                conversation_text(earlier), conversation_text(recent), original_topic
            )
        except AnalysisError as e:
            log.warning("drift_analysis_degraded", error=str(e))
            drift = DriftAnalysis()

        result = TopicDriftResult(
            is_drifting=is_drifting,
            original_topic=original_topic,
            current_direction=current_direction,
            drift_severity=drift.severity,
            messages_off_topic=messages_off_topic,
            suggested_redirection=drift.suggestion,
        )
        urgency = self.calculate_drift_urgency(result)
        result.urgency_level = urgency
        result.should_intervene_immediately = is_drifting and (
            urgency == UrgencyLevel.HIGH or messages_off_topic >= window + 1
        )

        if is_drifting:
            log.info(
                "topic_drift_detected",
                original_topic=original_topic,
                current_direction=current_direction,
                messages_off_topic=messages_off_topic,
                severity=drift.severity,
                urgency=urgency.value,
            )
        return result

    def calculate_drift_urgency(self, result: TopicDriftResult) -> UrgencyLevel:
        window = self.config.drift_detection_window
        if result.messages_off_topic >= window + 1 or result.drift_severity > 0.8:
            return UrgencyLevel.HIGH
        if result.messages_off_topic >= window or result.drift_severity > 0.5:
            return UrgencyLevel.MEDIUM
        return UrgencyLevel.LOW

    # ------------------------------------------------------------------
    # On-demand analyses
    # ------------------------------------------------------------------

    async def identify_information_gaps(
        self, context: ConversationContext
    ) -> List[InformationGap]:
        """Ask the analysis service what data is missing; [] on failure."""
        recent = context.message_history[-self.config.flow_window :]
        text = conversation_text(recent)

        try:
            reply = await self.text_analyzer.analyze_text(
                text, get_information_gaps_prompt(text)
            )
            entries = parse_json_array(reply)
        except (AnalysisError, LLMResponseParseError) as e:
            log.warning("information_gaps_unavailable", error=str(e))
            return []

        gaps: List[InformationGap] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if not entry.get("type") or not entry.get("description"):
                continue
            if not isinstance(entry.get("priority"), (int, float)):
                continue
            try:
                gaps.append(
                    InformationGap(
                        type=str(entry["type"]),
                        description=str(entry["description"]),
                        priority=int(entry["priority"]),
                    )
                )
            except ValidationError:
                log.debug("information_gap_dropped", entry=entry)
        return gaps

    async def assess_conversation_health(
        self, context: ConversationContext
    ) -> ConversationHealth:
        """Weighted engagement/productivity/focus score over recent messages."""
        recent = context.message_history[-self.config.health_window :]
        if not recent:
            return ConversationHealth(
                overall=0.0, engagement=0.0, productivity=0.0, focus=0.0
            )

        engagement = self._engagement_score(recent, len(context.participants))
        text = conversation_text(recent)
        productivity = await self._rating(
            text, get_productivity_prompt(text), "productivity"
        )
        focus = await self._rating(text, get_focus_prompt(text), "focus")

        overall = engagement * 0.3 + productivity * 0.4 + focus * 0.3
        return ConversationHealth(
            overall=round(overall, 2),
            engagement=round(engagement, 2),
            productivity=round(productivity, 2),
            focus=round(focus, 2),
        )

    @staticmethod
    def _engagement_score(
        messages: Sequence[ProcessedMessage], participant_count: int
    ) -> float:
        if not messages or participant_count == 0:
            return 0.0
        active = len({m.user_id for m in messages})
        participation = min(1.0, active / participant_count)
        average_sentiment = sum(m.sentiment.overall for m in messages) / len(messages)
        sentiment = (average_sentiment + 1) / 2
        frequency = min(1.0, _frequency(messages) / 5)
        return participation * 0.4 + sentiment * 0.3 + frequency * 0.3

    async def generate_redirection_strategy(
        self, original_topic: str, current_topic: str
    ) -> RedirectionStrategy:
        """Ask for a diplomatic way back to original_topic."""
        try:
            reply = await self.text_analyzer.analyze_text(
                f"{original_topic} -> {current_topic}",
                get_redirection_prompt(original_topic, current_topic),
            )
            data = parse_json_object(reply)
        except (AnalysisError, LLMResponseParseError) as e:
            log.warning("redirection_strategy_defaulted", error=str(e))
            return self.default_redirection_strategy(original_topic)

        try:
            approach = RedirectionApproach(data.get("approach"))
        except ValueError:
            approach = RedirectionApproach.GENTLE_REMINDER

        return RedirectionStrategy(
            approach=approach,
            message=data.get("message") or "Let's refocus on our main discussion.",
            context_summary=(
                data.get("context_summary")
                or data.get("contextSummary")
                or "Previous investment discussion"
            ),
            diplomatic_level=coerce_unit_float(
                data.get("diplomatic_level", data.get("diplomaticLevel")), 0.7
            ),
        )

    @staticmethod
    def default_redirection_strategy(original_topic: str) -> RedirectionStrategy:
        return RedirectionStrategy(
            approach=RedirectionApproach.GENTLE_REMINDER,
            message=(
                f"I notice we've moved away from our {original_topic} discussion. "
                "Should we circle back to that?"
            ),
            context_summary=f"Discussion about {original_topic}",
            diplomatic_level=0.8,
        )
