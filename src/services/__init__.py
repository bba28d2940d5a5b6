"""Services layer: signal aggregation, decision, manual control, learning."""

from src.services.context_analyzer import ContextAnalyzer
from src.services.context_tracker import ConversationContextTracker
from src.services.decision import InterventionDecisionEngine
from src.services.intervention_coordinator import InterventionCoordinator, MessageOutcome
from src.services.learning_module import LearningModule
from src.services.manual_control import ManualControlManager
from src.services.text_analysis_service import TextAnalysisService
from src.services.timing_analyzer import TimingAnalyzer

__all__ = [
    "ContextAnalyzer",
    "ConversationContextTracker",
    "InterventionDecisionEngine",
    "InterventionCoordinator",
    "MessageOutcome",
    "LearningModule",
    "ManualControlManager",
    "TextAnalysisService",
    "TimingAnalyzer",
]
