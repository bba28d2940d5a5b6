"""Clarification request scenario."""

from datetime import datetime

from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType, MomentumDirection
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput

CONFUSION_PHRASES = [
    "confused",
    "unclear",
    "what do you mean",
    "can you clarify",
    "i don't understand",
    "not following",
    "lost me",
    "explain",
]


class ClarificationRequestEvaluator(ScenarioEvaluator):
    """
    +0.3 when participation is unbalanced (< 0.5), +0.5 per recent message
    with a confusion phrase, +0.2 when momentum is clearly decreasing.
    Rejected below the clarification threshold.
    """

    intervention_type = InterventionType.CLARIFICATION_REQUEST
    description = "Ask for or offer clarification when participants are lost"

    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        phrases = self.params.get("confusion_phrases", CONFUSION_PHRASES)

        score = 0.0
        if analysis.participant_engagement.participation_balance < 0.5:
            score += 0.3

        confused_messages = 0
        for message in context.message_history[-3:]:
            if self.contains_any(message.content.lower(), phrases):
                confused_messages += 1
                score += 0.5

        momentum = analysis.conversation_momentum
        if momentum.direction == MomentumDirection.DECREASING and momentum.strength > 0.3:
            score += 0.2

        signals = {"confused_messages": confused_messages, "need_score": round(score, 3)}
        if score < self.config.clarification_threshold:
            return self.reject("No significant need for clarification detected", signals)

        return self.make_output(
            score,
            "Potential confusion or need for clarification detected in "
            "conversation flow",
            signals,
        )
