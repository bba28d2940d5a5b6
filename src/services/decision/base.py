"""Base classes for intervention scenario evaluators.

Each scenario (topic redirect, information provide, fact check,
clarification request, summary offer) is an independent heuristic that
returns either a zero score (not applicable) or a score in (0, 1] with a
reasoning string. The decision engine keeps the highest positive score.

Core classes:
- ScenarioOutput: score plus provenance for one evaluation
- ScenarioEvaluator: abstract base with auto-registration by intervention type
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, ClassVar, Dict, Optional

import structlog
from pydantic import BaseModel, Field

from src.core.config import DecisionConfig
from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import ConversationContext, UserPreferences
from src.domain.models.enums import InterventionType

logger = structlog.get_logger(__name__)


class ScenarioOutput(BaseModel):
    """Result of one scenario evaluation.

    A score of exactly 0 means "not applicable"; such outputs never win.
    """

    intervention_type: InterventionType
    score: float = Field(ge=0.0, le=1.0, description="0 = not applicable")
    reasoning: str = Field(description="Human-readable explanation")
    signals: Dict[str, Any] = Field(
        default_factory=dict, description="Intermediate values used"
    )

    @property
    def is_applicable(self) -> bool:
        return self.score > 0


class ScenarioEvaluator(ABC):
    """Abstract base for scenario evaluators with auto-registration.

    Subclass pattern:
        class MyScenario(ScenarioEvaluator):
            intervention_type = InterventionType.SUMMARY_OFFER

            def evaluate(self, context, analysis, preferences, now):
                ...
                return self.make_output(score, reasoning, signals)

    Evaluators are pure functions of their inputs: they read the context's
    histories and the flow analysis and never mutate them.
    """

    intervention_type: ClassVar[InterventionType]
    description: ClassVar[str] = ""

    _registry: ClassVar[dict[InterventionType, type["ScenarioEvaluator"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Register any subclass that defines intervention_type."""
        super().__init_subclass__(**kwargs)
        if "intervention_type" in cls.__dict__:
            cls._registry[cls.intervention_type] = cls

    @classmethod
    def get_registered(cls) -> dict[InterventionType, type["ScenarioEvaluator"]]:
        return cls._registry.copy()

    @classmethod
    def get_evaluator_class(
        cls, intervention_type: InterventionType
    ) -> type["ScenarioEvaluator"] | None:
        return cls._registry.get(intervention_type)

    def __init__(
        self,
        config: DecisionConfig,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            config: Decision thresholds
            params: Scenario-specific overrides (phrase lists, windows)
        """
        self.config = config
        self.params = params or {}

    @abstractmethod
    def evaluate(
        self,
        context: ConversationContext,
        analysis: FlowAnalysis,
        preferences: UserPreferences,
        now: datetime,
    ) -> ScenarioOutput:
        """Score this scenario for the current conversation state.

        Args:
            context: Session context (read only)
            analysis: Flow analysis for the newest message
            preferences: Primary participant's preferences
            now: Evaluation time

        Returns:
            ScenarioOutput with score 0 when the scenario does not apply
        """

    def fired_within(
        self, context: ConversationContext, now: datetime, minutes: float
    ) -> bool:
        """True if an intervention of this type was made in the last minutes."""
        horizon = now - timedelta(minutes=minutes)
        return any(
            record.type == self.intervention_type and record.timestamp > horizon
            for record in context.intervention_history
        )

    def make_output(
        self,
        score: float,
        reasoning: str,
        signals: Optional[Dict[str, Any]] = None,
    ) -> ScenarioOutput:
        """Build an output with the score capped at 1.0."""
        return ScenarioOutput(
            intervention_type=self.intervention_type,
            score=max(0.0, min(1.0, score)),
            reasoning=reasoning,
            signals=signals or {},
        )

    def reject(self, reasoning: str, signals: Optional[Dict[str, Any]] = None):
        return self.make_output(0.0, reasoning, signals)

    @staticmethod
    def contains_any(content: str, phrases: list[str]) -> bool:
        return any(phrase in content for phrase in phrases)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.intervention_type.value})"
