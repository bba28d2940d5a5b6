"""Summary offer scenario.

Long or topic-hopping meetings benefit from a recap; the score grows with
message count, elapsed time and the number of confidently labelled messages.
"""

from datetime import datetime

from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput


class SummaryOfferEvaluator(ScenarioEvaluator):
    intervention_type = InterventionType.SUMMARY_OFFER
    description = "Offer a recap of a long or complex discussion"

    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        message_count = len(context.message_history)
        duration_minutes = (now - context.start_time).total_seconds() / 60

        score = 0.0
        if message_count > 20:
            score += 0.3
        if message_count > 50:
            score += 0.2
        if duration_minutes > 15:
            score += 0.2
        if duration_minutes > 30:
            score += 0.2

        confident_labels = sum(
            1
            for message in context.message_history
            if any(topic.confidence > 0.7 for topic in message.topic_classification)
        )
        if confident_labels > 3:
            score += 0.3

        recently_summarised = self.fired_within(
            context, now, self.params.get("recent_window_minutes", 20)
        )
        if recently_summarised:
            score *= 0.3

        signals = {
            "message_count": message_count,
            "duration_minutes": round(duration_minutes, 1),
            "confident_labels": confident_labels,
            "recently_summarised": recently_summarised,
        }
        if score < self.config.summary_threshold:
            return self.reject(
                "Conversation not complex enough to warrant summary", signals
            )

        return self.make_output(
            score,
            f"Long conversation ({message_count} messages, "
            f"{duration_minutes:.1f} minutes) may benefit from summary",
            signals,
        )
