"""
Intervention decision engine.

The single authority for "should the assistant speak now, about what, with
what confidence and priority". One call to should_intervene:

1. Refuses when the message history is empty
2. Refuses when the frequency-scaled hourly cap is reached
3. Refuses inside the cooldown after the last intervention
4. Scores every registered scenario, weighted by learned type preferences
   when given, and keeps the best positive score
5. Applies the confidence threshold (global or learned per user)
6. Lets manual control veto for the primary participant, then derives priority

Policy refusals are decisions, not exceptions: each carries a reason string.
The engine never mutates the context; recording an intervention is a
separate step (build_intervention_record + ConversationContext.append_intervention).
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from src.core.config import DecisionConfig, intervention_config
from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import (
    InterventionFrequency,
    InterventionType,
    Priority,
    UserReactionType,
)
from src.domain.models.intervention import (
    ConversationState,
    InterventionDecision,
    InterventionRecord,
    TimingStrategy,
)
from src.domain.models.learning import (
    BehaviorAdjustment,
    ThresholdAdjustments,
    UserFeedback,
)
from src.domain.models.message import ProcessedMessage
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput
from src.services.manual_control import ManualControlManager

log = structlog.get_logger(__name__)

# Evaluation order; on equal scores the earlier scenario wins.
DEFAULT_SCENARIO_ORDER: List[InterventionType] = [
    InterventionType.TOPIC_REDIRECT,
    InterventionType.INFORMATION_PROVIDE,
    InterventionType.FACT_CHECK,
    InterventionType.CLARIFICATION_REQUEST,
    InterventionType.SUMMARY_OFFER,
]

FREQUENCY_CAP_MULTIPLIERS: Dict[InterventionFrequency, float] = {
    InterventionFrequency.MINIMAL: 0.3,
    InterventionFrequency.MODERATE: 0.6,
    InterventionFrequency.ACTIVE: 1.0,
    InterventionFrequency.VERY_ACTIVE: 1.5,
}

BASE_DELAY_SECONDS: Dict[InterventionType, float] = {
    InterventionType.FACT_CHECK: 3,
    InterventionType.TOPIC_REDIRECT: 5,
    InterventionType.CLARIFICATION_REQUEST: 2,
    InterventionType.INFORMATION_PROVIDE: 4,
    InterventionType.SUMMARY_OFFER: 8,
}

PRIORITY_DELAY_MULTIPLIERS: Dict[Priority, float] = {
    Priority.URGENT: 0.3,
    Priority.HIGH: 0.6,
    Priority.MEDIUM: 1.0,
    Priority.LOW: 1.5,
}

PRIORITY_INTERRUPT_BASE: Dict[Priority, float] = {
    Priority.URGENT: 0.9,
    Priority.HIGH: 0.7,
    Priority.MEDIUM: 0.5,
    Priority.LOW: 0.3,
}

# Learned type preference that leaves a scenario score unchanged.
NEUTRAL_TYPE_PREFERENCE = 0.7

HIGH_PRIORITY_TYPES = {InterventionType.FACT_CHECK, InterventionType.TOPIC_REDIRECT}

REASON_NO_MESSAGES = "No messages in conversation history"
REASON_LIMIT_EXCEEDED = "Intervention limit exceeded"
REASON_TOO_SOON = "Too soon since last intervention"
REASON_NO_SCENARIOS = "No intervention scenarios identified"
REASON_BELOW_THRESHOLD = "No intervention meets confidence threshold"
REASON_MANUAL_OVERRIDE = "Manual control override: activity level restriction"


def calculate_priority(score: float, intervention_type: InterventionType) -> Priority:
    """Priority ladder: URGENT >= 0.9; HIGH >= 0.7 or fact-check/redirect; MEDIUM >= 0.5."""
    if score >= 0.9:
        return Priority.URGENT
    if score >= 0.7 or intervention_type in HIGH_PRIORITY_TYPES:
        return Priority.HIGH
    if score >= 0.5:
        return Priority.MEDIUM
    return Priority.LOW


class InterventionDecisionEngine:
    """Rate-limited, explainable choice among the scenario evaluators."""

    def __init__(
        self,
        config: Optional[DecisionConfig] = None,
        manual_control: Optional[ManualControlManager] = None,
        evaluators: Optional[Sequence[ScenarioEvaluator]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            config: Thresholds and rate limits (defaults to YAML config)
            manual_control: Activity-level gate; no gate when None
            evaluators: Ordered scenario evaluators (registered defaults if None)
            clock: Returns the current UTC time
        """
        self.config = config or intervention_config.decision
        self.manual_control = manual_control
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        if evaluators is None:
            evaluators = self._default_evaluators()
        self.evaluators: List[ScenarioEvaluator] = list(evaluators)

        log.info(
            "decision_engine_initialized",
            scenarios=[e.intervention_type.value for e in self.evaluators],
            confidence_threshold=self.config.confidence_threshold,
            manual_control=manual_control is not None,
        )

    def _default_evaluators(self) -> List[ScenarioEvaluator]:
        registry = ScenarioEvaluator.get_registered()
        evaluators = []
        for intervention_type in DEFAULT_SCENARIO_ORDER:
            evaluator_class = registry.get(intervention_type)
            if evaluator_class is None:
                log.warning("scenario_not_registered", type=intervention_type.value)
                continue
            evaluators.append(evaluator_class(self.config))
        return evaluators

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def should_intervene(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: Optional[UserPreferences] = None,
        thresholds: Optional[ThresholdAdjustments] = None,
    ) -> InterventionDecision:
        """
        Decide whether to intervene on the current context.

        Args:
            context: Session context (read only)
            analysis: Flow analysis for the newest message
            preferences: Primary participant's preferences (defaults if None)
            thresholds: Learned per-user thresholds; replaces the global
                confidence threshold and weights scenario scores by type
                preference

        Returns:
            InterventionDecision; never raises for policy refusals
        """
        preferences = preferences or UserPreferences()
        threshold = (
            self.config.confidence_threshold
            if thresholds is None
            else thresholds.confidence_threshold
        )
        now = self.clock()
        primary_user = context.primary_participant_id

        if not context.message_history:
            return self._refuse(context, REASON_NO_MESSAGES)

        if self.has_exceeded_intervention_limits(context, preferences, now):
            return self._refuse(context, REASON_LIMIT_EXCEEDED)

        if not self.has_enough_time_passed(context, now):
            return self._refuse(context, REASON_TOO_SOON)

        candidates = self.evaluate_scenarios(context, analysis, preferences, now)
        if not candidates:
            return self._refuse(context, REASON_NO_SCENARIOS)

        if thresholds is not None:
            candidates = [
                self.apply_type_preference(c, thresholds.type_preferences)
                for c in candidates
            ]

        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.score > best.score:
                best = candidate

        if best.score < threshold:
            return self._refuse(context, REASON_BELOW_THRESHOLD)

        if self.manual_control is not None:
            if not self.manual_control.should_allow_intervention(primary_user, True):
                return self._refuse(context, REASON_MANUAL_OVERRIDE)

        decision = InterventionDecision(
            should_respond=True,
            intervention_type=best.intervention_type,
            confidence=best.score,
            priority=calculate_priority(best.score, best.intervention_type),
            reasoning=best.reasoning,
        )
        log.info(
            "intervention_decided",
            session_id=context.session_id,
            type=decision.intervention_type.value,
            confidence=round(decision.confidence, 3),
            priority=decision.priority.value,
            threshold=threshold,
        )
        return decision

    def _refuse(self, context: ConversationContext, reason: str) -> InterventionDecision:
        log.debug("intervention_declined", session_id=context.session_id, reason=reason)
        return InterventionDecision.no_intervention(reason)

    def evaluate_scenarios(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> List[ScenarioOutput]:
        """Applicable (score > 0) scenario outputs in evaluator order."""
        outputs = []
        for evaluator in self.evaluators:
            output = evaluator.evaluate(context, analysis, preferences, now)
            log.debug(
                "scenario_scored",
                scenario=output.intervention_type.value,
                score=round(output.score, 3),
                reasoning=output.reasoning,
            )
            if output.is_applicable:
                outputs.append(output)
        return outputs

    @staticmethod
    def apply_type_preference(
        output: ScenarioOutput, type_preferences: Dict[InterventionType, float]
    ) -> ScenarioOutput:
        """Scale a score by its learned type preference relative to neutral, capped at 1."""
        preference = type_preferences.get(
            output.intervention_type, NEUTRAL_TYPE_PREFERENCE
        )
        if preference == NEUTRAL_TYPE_PREFERENCE:
            return output
        score = min(1.0, output.score * preference / NEUTRAL_TYPE_PREFERENCE)
        return output.model_copy(
            update={
                "score": score,
                "signals": {**output.signals, "type_preference": preference},
            }
        )

    def hourly_cap(self, preferences: UserPreferences, user_id: str) -> int:
        """Per-hour cap scaled by the (activity-adjusted) frequency preference."""
        base_cap = preferences.max_interventions_per_hour
        if base_cap is None:
            base_cap = self.config.max_interventions_per_hour

        frequency = preferences.intervention_frequency
        if self.manual_control is not None:
            frequency = self.manual_control.adjust_intervention_frequency(
                user_id, preferences
            )
        return int(base_cap * FREQUENCY_CAP_MULTIPLIERS[frequency])

    def has_exceeded_intervention_limits(
        self,
        context: ConversationContext,
        preferences: UserPreferences,
        now: datetime,
    ) -> bool:
        one_hour_ago = now - timedelta(hours=1)
        recent = [r for r in context.intervention_history if r.timestamp >= one_hour_ago]
        return len(recent) >= self.hourly_cap(preferences, context.primary_participant_id)

    def has_enough_time_passed(self, context: ConversationContext, now: datetime) -> bool:
        if not context.intervention_history:
            return True
        last = context.intervention_history[-1].timestamp
        elapsed = (now - last).total_seconds()
        return elapsed >= self.config.min_seconds_between_interventions

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def calculate_intervention_timing(
        self, decision: InterventionDecision, state: ConversationState
    ) -> TimingStrategy:
        """Delay, pause-waiting and interrupt willingness for a decision."""
        if not decision.should_respond:
            return TimingStrategy(
                delay_seconds=0,
                wait_for_pause=False,
                interrupt_threshold=0.0,
                reasoning="No intervention needed",
            )

        delay = BASE_DELAY_SECONDS.get(decision.intervention_type, 5)
        delay *= PRIORITY_DELAY_MULTIPLIERS[decision.priority]
        if state.is_active and state.pause_duration_seconds < 5:
            delay *= 1.5

        if decision.priority == Priority.URGENT:
            wait_for_pause = False
        elif state.is_active and state.pause_duration_seconds < 3:
            wait_for_pause = True
        else:
            wait_for_pause = decision.priority != Priority.HIGH

        interrupt = PRIORITY_INTERRUPT_BASE[decision.priority] * decision.confidence
        interrupt = max(0.1, min(1.0, interrupt))

        return TimingStrategy(
            delay_seconds=max(1, round(delay)),
            wait_for_pause=wait_for_pause,
            interrupt_threshold=interrupt,
            reasoning=(
                f"{decision.intervention_type.value} with {decision.priority.value} "
                f"priority, confidence: {decision.confidence}"
            ),
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def adapt_behavior_from_feedback(
        self, feedback: UserFeedback, history: Sequence[InterventionRecord]
    ) -> BehaviorAdjustment:
        """Nudge threshold and frequency from a 1-5 rating of one intervention."""
        intervention = next((r for r in history if r.id == feedback.intervention_id), None)
        if intervention is None:
            return BehaviorAdjustment(
                intervention_threshold=self.config.confidence_threshold,
                frequency_multiplier=1.0,
                preferred_types=list(InterventionType),
                reasoning="Intervention not found in history",
            )

        score = feedback.rating / 5.0
        adjustment = 0.0
        if score < 0.4:
            adjustment = 0.1
        elif score > 0.8:
            adjustment = -0.1
        threshold = max(0.1, min(0.9, self.config.confidence_threshold + adjustment))

        multiplier = 1.0
        if score < 0.3:
            multiplier = 0.7
        elif score > 0.9:
            multiplier = 1.3

        return BehaviorAdjustment(
            intervention_threshold=threshold,
            frequency_multiplier=multiplier,
            preferred_types=self._preferred_types(history),
            reasoning=(
                f"Adjusted based on feedback rating {feedback.rating}/5 "
                f"for {intervention.type.value}"
            ),
        )

    @staticmethod
    def _preferred_types(history: Sequence[InterventionRecord]) -> List[InterventionType]:
        """Types whose reactions average >= 3.5 (positive = 5, negative = 1)."""
        ratings: Dict[InterventionType, List[int]] = {}
        for record in history:
            if record.user_reaction is None:
                continue
            if record.user_reaction.type == UserReactionType.POSITIVE:
                ratings.setdefault(record.type, []).append(5)
            elif record.user_reaction.type == UserReactionType.NEGATIVE:
                ratings.setdefault(record.type, []).append(1)

        preferred = [t for t, r in ratings.items() if sum(r) / len(r) >= 3.5]
        return preferred or list(InterventionType)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def build_intervention_record(
        self,
        context: ConversationContext,
        decision: InterventionDecision,
        trigger_message: ProcessedMessage,
        response: str = "",
    ) -> InterventionRecord:
        """Create the record for an intervention that is about to be delivered."""
        return InterventionRecord(
            id=str(uuid.uuid4()),
            timestamp=self.clock(),
            type=decision.intervention_type,
            trigger=trigger_message.content[:200],
            response=response,
            conversation_id=context.session_id,
            user_id=trigger_message.user_id,
        )
