"""Fact check scenario."""

from datetime import datetime

from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType
from src.services.decision.base import ScenarioEvaluator, ScenarioOutput

CLAIM_INDICATORS = [
    "according to",
    "studies show",
    "data shows",
    "research indicates",
    "statistics",
    "percent",
    "%",
    "million",
    "billion",
    "growth of",
    "market is",
    "industry",
    "competitors",
]
UNCERTAINTY_INDICATORS = [
    "i heard",
    "i think",
    "probably",
    "maybe",
    "not sure",
    "someone told me",
    "i believe",
]
CONTRADICTION_MARKERS = ["but", "however", "actually"]


class FactCheckEvaluator(ScenarioEvaluator):
    """
    Per recent message: +0.4 factual claim, +0.3 uncertain source, +0.2
    contradiction marker. x0.4 after a fact check in the last 15 minutes;
    rejected below the fact-check threshold.
    """

    intervention_type = InterventionType.FACT_CHECK
    description = "Verify figures and claims made in passing"

    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        claims = self.params.get("claim_indicators", CLAIM_INDICATORS)
        uncertainty = self.params.get("uncertainty_indicators", UNCERTAINTY_INDICATORS)
        contradictions = self.params.get("contradiction_markers", CONTRADICTION_MARKERS)

        score = 0.0
        for message in context.message_history[-3:]:
            content = message.content.lower()
            if self.contains_any(content, claims):
                score += 0.4
            if self.contains_any(content, uncertainty):
                score += 0.3
            # Substring match, so "but" also hits words like "contribute".
            if self.contains_any(content, contradictions):
                score += 0.2

        recently_checked = self.fired_within(
            context, now, self.params.get("recent_window_minutes", 15)
        )
        if recently_checked:
            score *= 0.4

        signals = {"claim_score": round(score, 3), "recently_checked": recently_checked}
        if score < self.config.fact_check_threshold:
            return self.reject(
                "No significant fact-checking opportunities detected", signals
            )

        return self.make_output(
            score,
            "Potential factual claims or uncertainties detected that could "
            "benefit from verification",
            signals,
        )
