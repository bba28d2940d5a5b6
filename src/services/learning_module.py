"""
Learning/feedback loop.

Turns post-hoc reactions to interventions into adjusted thresholds without
retraining anything:

- record_intervention_outcome: score effectiveness, attach it to the record,
  store the labelled outcome, refresh per-user metrics and global patterns
- update_intervention_thresholds: per-user thresholds from the last 30 days
- identify_success_patterns: trigger contexts that reliably work
- adapt_behavior_from_feedback: immediate adjustment after one reaction

All state lives in an injected keyed store under "feedback:", "interventions:",
"metrics:" and "global_patterns" keys. record_intervention_outcome is the only
method that writes it.
"""

import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from src.core.config import LearningConfig, intervention_config
from src.domain.models.enums import (
    ConversationOutcome,
    InterventionType,
    UserReactionType,
)
from src.domain.models.intervention import InterventionRecord
from src.domain.models.learning import (
    BehaviorAdjustment,
    EffectivenessScore,
    FeedbackRecord,
    InterventionPattern,
    LearningMetrics,
    ThresholdAdjustments,
    UserReaction,
)
from src.persistence.repositories.keyed_store import InMemoryKeyedStore
from src.services.protocols import IKeyedStore

log = structlog.get_logger(__name__)

# (overall, timing, relevance, tone) deltas from a neutral 0.5
REACTION_DELTAS: Dict[UserReactionType, tuple[float, float, float, float]] = {
    UserReactionType.POSITIVE: (0.3, 0.0, 0.0, 0.3),
    UserReactionType.ACKNOWLEDGED: (0.1, 0.0, 0.0, 0.0),
    UserReactionType.NEGATIVE: (-0.3, 0.0, 0.0, -0.3),
    UserReactionType.IGNORED: (-0.1, 0.0, -0.2, 0.0),
    UserReactionType.DISMISSED: (-0.2, 0.0, -0.3, 0.0),
}

OUTCOME_DELTAS: Dict[ConversationOutcome, tuple[float, float, float, float]] = {
    ConversationOutcome.IMPROVED_FOCUS: (0.2, 0.2, 0.3, 0.0),
    ConversationOutcome.PROVIDED_VALUE: (0.3, 0.0, 0.4, 0.0),
    ConversationOutcome.DISRUPTED_FLOW: (-0.3, -0.4, 0.0, 0.0),
    ConversationOutcome.NEGATIVE_IMPACT: (-0.4, -0.3, -0.2, 0.0),
}

SUCCESSFUL_REACTIONS = {UserReactionType.POSITIVE, UserReactionType.ACKNOWLEDGED}

DEFAULT_THRESHOLDS = ThresholdAdjustments(
    intervention_threshold=0.7,
    confidence_threshold=0.6,
    timing_threshold=0.5,
    type_preferences={
        InterventionType.TOPIC_REDIRECT: 0.7,
        InterventionType.INFORMATION_PROVIDE: 0.8,
        InterventionType.FACT_CHECK: 0.9,
        InterventionType.CLARIFICATION_REQUEST: 0.6,
        InterventionType.SUMMARY_OFFER: 0.5,
    },
)

HIGH_IMPACT_TYPES = [
    InterventionType.FACT_CHECK,
    InterventionType.INFORMATION_PROVIDE,
    InterventionType.TOPIC_REDIRECT,
]

# Effectiveness above which an intervention counts towards the success rate.
METRICS_SUCCESS_EFFECTIVENESS = 0.5


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_effectiveness(
    reaction: UserReaction, outcome: ConversationOutcome
) -> EffectivenessScore:
    """Shift each sub-score from 0.5 by the reaction and outcome deltas."""
    scores = [0.5, 0.5, 0.5, 0.5]
    for deltas in (
        REACTION_DELTAS.get(reaction.type, (0.0, 0.0, 0.0, 0.0)),
        OUTCOME_DELTAS.get(outcome, (0.0, 0.0, 0.0, 0.0)),
    ):
        scores = [score + delta for score, delta in zip(scores, deltas)]

    overall, timing, relevance, tone = (_clamp(s) for s in scores)
    return EffectivenessScore(
        overall=overall, timing=timing, relevance=relevance, tone=tone, outcome=outcome
    )


def _mean(values: Sequence[float], default: float = 0.0) -> float:
    return sum(values) / len(values) if values else default


class LearningModule:
    """Per-user feedback aggregation and threshold recomputation."""

    def __init__(
        self,
        store: Optional[IKeyedStore] = None,
        config: Optional[LearningConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else InMemoryKeyedStore()
        self.config = config or intervention_config.learning
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def record_intervention_outcome(
        self,
        intervention: InterventionRecord,
        reaction: UserReaction,
        outcome: ConversationOutcome,
    ) -> EffectivenessScore:
        """
        Label an intervention with its reaction and outcome.

        Raises:
            FeedbackAlreadyRecordedError: If the intervention was labelled before
        """
        effectiveness = calculate_effectiveness(reaction, outcome)
        intervention.attach_feedback(reaction, effectiveness)

        user_id = intervention.user_id
        self.store.append(f"interventions:{user_id}", intervention)
        self.store.append(
            f"feedback:{user_id}",
            FeedbackRecord(
                id=f"feedback_{uuid.uuid4().hex[:12]}",
                user_id=user_id,
                intervention_id=intervention.id,
                intervention_type=intervention.type,
                reaction=reaction,
                conversation_context=intervention.trigger,
                timestamp=self.clock(),
                effectiveness=effectiveness,
            ),
        )

        self._update_user_metrics(user_id)
        self._update_global_patterns(intervention, effectiveness)

        log.info(
            "intervention_outcome_recorded",
            user_id=user_id,
            intervention_id=intervention.id,
            type=intervention.type.value,
            reaction=reaction.type.value,
            outcome=outcome.value,
            overall=round(effectiveness.overall, 2),
        )
        return effectiveness

    def _update_user_metrics(self, user_id: str) -> None:
        interventions: List[InterventionRecord] = self.store.get(
            f"interventions:{user_id}", []
        )
        feedback: List[FeedbackRecord] = self.store.get(f"feedback:{user_id}", [])
        if not interventions:
            return

        def overall(records: Sequence[InterventionRecord]) -> float:
            scores = [r.effectiveness.overall if r.effectiveness else 0.0 for r in records]
            return _mean(scores)

        successes = [
            r
            for r in interventions
            if r.effectiveness
            and r.effectiveness.overall > METRICS_SUCCESS_EFFECTIVENESS
        ]
        satisfied = [f for f in feedback if f.reaction.type in SUCCESSFUL_REACTIONS]

        recent, previous = interventions[-10:], interventions[-20:-10]
        trend = overall(recent) - overall(previous) if previous else 0.0

        self.store.set(
            f"metrics:{user_id}",
            LearningMetrics(
                total_interventions=len(interventions),
                success_rate=len(successes) / len(interventions),
                average_effectiveness=overall(interventions),
                user_satisfaction=len(satisfied) / len(feedback) if feedback else 0.5,
                improvement_trend=max(-1.0, min(1.0, trend)),
                last_updated=self.clock(),
            ),
        )

    def _update_global_patterns(
        self, intervention: InterventionRecord, effectiveness: EffectivenessScore
    ) -> None:
        key = f"{intervention.type.value}_{intervention.trigger[:20]}"
        success = 1.0 if effectiveness.overall > self.config.success_effectiveness else 0.0
        patterns: List[InterventionPattern] = list(self.store.get("global_patterns", []))

        for index, pattern in enumerate(patterns):
            if pattern.pattern == key:
                patterns[index] = pattern.model_copy(
                    update={
                        "success_rate": (pattern.success_rate + success) / 2,
                        "confidence": min(1.0, pattern.confidence + 0.1),
                    }
                )
                break
        else:
            patterns.append(
                InterventionPattern(
                    pattern=key,
                    success_rate=success,
                    contexts=[intervention.trigger],
                    intervention_types=[intervention.type],
                    user_ids=[intervention.user_id],
                    confidence=0.1,
                )
            )
        self.store.set("global_patterns", patterns)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_feedback_history(self, user_id: str) -> List[FeedbackRecord]:
        return list(self.store.get(f"feedback:{user_id}", []))

    def has_feedback_history(self, user_id: str) -> bool:
        return bool(self.store.get(f"feedback:{user_id}"))

    def get_user_metrics(self, user_id: str) -> Optional[LearningMetrics]:
        return self.store.get(f"metrics:{user_id}")

    def get_global_patterns(self) -> List[InterventionPattern]:
        return list(self.store.get("global_patterns", []))

    def update_intervention_thresholds(
        self,
        user_id: str,
        feedback_history: Optional[Sequence[FeedbackRecord]] = None,
    ) -> ThresholdAdjustments:
        """
        Recompute a user's thresholds from their recent feedback.

        Args:
            user_id: User whose stored feedback is used
            feedback_history: Explicit feedback to use instead of the stored one

        Returns:
            ThresholdAdjustments; fixed defaults for users with no feedback
        """
        feedback = list(
            feedback_history
            if feedback_history is not None
            else self.store.get(f"feedback:{user_id}", [])
        )
        if not feedback:
            return DEFAULT_THRESHOLDS.model_copy(deep=True)

        cutoff = self.clock() - timedelta(days=self.config.recent_feedback_days)
        recent = [f for f in feedback if f.timestamp >= cutoff]
        success_rate = self._success_rate(recent)
        effectiveness = self._average_effectiveness(recent)

        intervention_threshold = 0.7
        if success_rate > 0.8:
            intervention_threshold = 0.6
        elif success_rate < 0.4:
            intervention_threshold = 0.9

        confidence_threshold = 0.6
        if effectiveness > 0.7:
            confidence_threshold = 0.5
        elif effectiveness < 0.4:
            confidence_threshold = 0.8

        adjustments = ThresholdAdjustments(
            intervention_threshold=intervention_threshold,
            confidence_threshold=confidence_threshold,
            timing_threshold=0.5,
            type_preferences=self._type_preferences(recent),
        )
        log.debug(
            "thresholds_updated",
            user_id=user_id,
            success_rate=round(success_rate, 2),
            average_effectiveness=round(effectiveness, 2),
            intervention_threshold=intervention_threshold,
            confidence_threshold=confidence_threshold,
        )
        return adjustments

    @staticmethod
    def _success_rate(feedback: Sequence[FeedbackRecord]) -> float:
        if not feedback:
            return 0.5
        successes = [f for f in feedback if f.reaction.type in SUCCESSFUL_REACTIONS]
        return len(successes) / len(feedback)

    @staticmethod
    def _average_effectiveness(feedback: Sequence[FeedbackRecord]) -> float:
        scores = [f.effectiveness.overall for f in feedback if f.effectiveness]
        return _mean(scores, default=0.5)

    def _type_preferences(
        self, feedback: Sequence[FeedbackRecord]
    ) -> Dict[InterventionType, float]:
        preferences = {t: 0.7 for t in InterventionType}
        by_type: Dict[InterventionType, List[FeedbackRecord]] = {}
        for record in feedback:
            by_type.setdefault(record.intervention_type, []).append(record)

        for intervention_type, records in by_type.items():
            blended = (
                self._success_rate(records) * 0.6
                + self._average_effectiveness(records) * 0.4
            )
            preferences[intervention_type] = max(0.3, min(0.9, blended))
        return preferences

    def identify_success_patterns(self) -> List[InterventionPattern]:
        """
        Trigger contexts (first three words) with a reliable success record.

        A group qualifies with at least pattern_min_samples successful
        interventions and a success rate above pattern_min_success_rate.
        """
        groups: Dict[str, List[InterventionRecord]] = {}
        for key in self.store.keys("interventions:"):
            for record in self.store.get(key, []):
                context_key = " ".join(record.trigger.split(" ")[:3])
                groups.setdefault(context_key, []).append(record)

        patterns: List[InterventionPattern] = []
        for context_key, records in groups.items():
            successful = [
                r
                for r in records
                if r.effectiveness
                and r.effectiveness.overall > self.config.success_effectiveness
            ]
            if len(successful) < self.config.pattern_min_samples:
                continue
            success_rate = len(successful) / len(records)
            if success_rate <= self.config.pattern_min_success_rate:
                continue

            patterns.append(
                InterventionPattern(
                    pattern=context_key,
                    success_rate=success_rate,
                    contexts=[context_key],
                    intervention_types=list(dict.fromkeys(r.type for r in successful)),
                    user_ids=list(dict.fromkeys(r.user_id for r in successful)),
                    confidence=self._pattern_confidence(successful),
                )
            )

        return sorted(patterns, key=lambda p: p.success_rate * p.confidence, reverse=True)

    def _pattern_confidence(self, records: Sequence[InterventionRecord]) -> float:
        size = min(1.0, len(records) / self.config.pattern_sample_saturation)
        effectiveness = _mean(
            [r.effectiveness.overall if r.effectiveness else 0.0 for r in records]
        )
        return size * 0.4 + effectiveness * 0.6

    def adapt_behavior_from_feedback(
        self, reaction: UserReaction, history: Sequence[InterventionRecord]
    ) -> BehaviorAdjustment:
        """Immediate frequency/threshold suggestion after one reaction."""
        recent = list(history[-10:])
        multiplier, threshold = 1.0, 0.7
        preferred: List[InterventionType] = []

        if reaction.type == UserReactionType.POSITIVE:
            multiplier, threshold = 1.2, 0.6
            preferred = self._successful_types(recent)
        elif reaction.type == UserReactionType.NEGATIVE:
            multiplier, threshold = 0.5, 0.9
            preferred = [InterventionType.CLARIFICATION_REQUEST]
        elif reaction.type == UserReactionType.IGNORED:
            multiplier, threshold = 0.8, 0.8
            preferred = list(HIGH_IMPACT_TYPES)

        return BehaviorAdjustment(
            intervention_threshold=threshold,
            frequency_multiplier=multiplier,
            preferred_types=preferred,
            reasoning=(
                f"Adapted based on {reaction.type.value} feedback "
                f"with {reaction.confidence} confidence"
            ),
        )

    def _successful_types(
        self, records: Sequence[InterventionRecord]
    ) -> List[InterventionType]:
        """Up to three types with the most successful interventions."""
        counts = Counter(
            r.type
            for r in records
            if r.effectiveness
            and r.effectiveness.overall > self.config.success_effectiveness
        )
        return [t for t, _ in counts.most_common(3)]
