"""Intervention decision engine and its scenario evaluators.

Importing this package registers the five built-in scenarios with
ScenarioEvaluator via __init_subclass__.
"""

from src.services.decision.base import ScenarioEvaluator, ScenarioOutput
from src.services.decision.clarification_request import ClarificationRequestEvaluator
from src.services.decision.fact_check import FactCheckEvaluator
from src.services.decision.information_provide import InformationProvideEvaluator
from src.services.decision.summary_offer import SummaryOfferEvaluator
from src.services.decision.topic_redirect import TopicRedirectEvaluator
from src.services.decision.engine import (
    DEFAULT_SCENARIO_ORDER,
    InterventionDecisionEngine,
    calculate_priority,
)

__all__ = [
    "ScenarioEvaluator",
    "ScenarioOutput",
    "TopicRedirectEvaluator",
    "InformationProvideEvaluator",
    "FactCheckEvaluator",
    "ClarificationRequestEvaluator",
    "SummaryOfferEvaluator",
    "DEFAULT_SCENARIO_ORDER",
    "InterventionDecisionEngine",
    "calculate_priority",
]
