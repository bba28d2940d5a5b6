"""Topic redirect scenario.

Scores how far the conversation has wandered: low topic stability, made
worse by fading momentum. Needs a few messages before it will fire.
"""

from datetime import datetime

from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType, MomentumDirection
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput


class TopicRedirectEvaluator(ScenarioEvaluator):
    """
    score = (1 - topic_stability) + 0.3 if momentum is decreasing

    Scaled x1.2 when no redirect fired in the last 10 minutes, x0.5
    otherwise, then rejected below the topic-drift threshold.
    """

    intervention_type = InterventionType.TOPIC_REDIRECT
    description = "Steer a drifting conversation back to its topic"

    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        min_messages = self.params.get("min_recent_messages", 3)
        cooldown_minutes = self.params.get("recent_window_minutes", 10)

        drift_score = 1 - analysis.topic_stability
        decreasing = (
            analysis.conversation_momentum.direction == MomentumDirection.DECREASING
        )
        momentum_penalty = 0.3 if decreasing else 0.0

        if len(context.message_history[-5:]) < min_messages:
            return self.reject("Not enough messages to assess drift")

        score = drift_score + momentum_penalty
        recently_redirected = self.fired_within(context, now, cooldown_minutes)
        score *= 0.5 if recently_redirected else 1.2

        signals = {
            "drift_score": round(drift_score, 3),
            "momentum_penalty": momentum_penalty,
            "recently_redirected": recently_redirected,
        }
        if score < self.config.topic_drift_threshold:
            return self.reject("Topic drift below threshold", signals)

        return self.make_output(
            score,
            f"Topic instability detected ({drift_score * 100:.1f}%), "
            f"momentum: {analysis.conversation_momentum.direction.value}",
            signals,
        )
