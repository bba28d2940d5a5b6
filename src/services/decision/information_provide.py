"""Information provide scenario.

Looks for information needs in the last three messages: data keywords,
direct questions and hedged statements.
"""

from datetime import datetime

from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput

INFORMATION_KEYWORDS = [
    "company",
    "valuation",
    "revenue",
    "market size",
    "competition",
    "growth rate",
    "metrics",
    "data",
    "numbers",
    "statistics",
]
QUESTION_WORDS = ["what", "how", "why", "when", "where", "which"]
UNCERTAINTY_PHRASES = ["maybe", "perhaps", "i think", "probably", "not sure"]


class InformationProvideEvaluator(ScenarioEvaluator):
    """
    Per recent message: +0.3 data keyword, +0.4 question (question word and
    "?"), +0.2 uncertainty phrase. x1.2 when the user listed preferred
    information types, x0.6 when information was provided in the last 5
    minutes; rejected below the information-gap threshold.
    """

    intervention_type = InterventionType.INFORMATION_PROVIDE
    description = "Offer data the participants seem to be missing"

    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        keywords = self.params.get("keywords", INFORMATION_KEYWORDS)
        question_words = self.params.get("question_words", QUESTION_WORDS)
        uncertainty = self.params.get("uncertainty_phrases", UNCERTAINTY_PHRASES)

        score = 0.0
        for message in context.message_history[-3:]:
            content = message.content.lower()
            if self.contains_any(content, keywords):
                score += 0.3
            if self.contains_any(content, question_words) and "?" in content:
                score += 0.4
            if self.contains_any(content, uncertainty):
                score += 0.2

        if preferences.preferred_information_types:
            score *= 1.2
        recently_provided = self.fired_within(
            context, now, self.params.get("recent_window_minutes", 5)
        )
        if recently_provided:
            score *= 0.6

        signals = {"need_score": round(score, 3), "recently_provided": recently_provided}
        if score < self.config.information_gap_threshold:
            return self.reject("No significant information gaps detected", signals)

        preferred = ", ".join(t.value for t in preferences.preferred_information_types)
        return self.make_output(
            score,
            f"Information needs detected in recent messages, user prefers: {preferred}",
            signals,
        )
