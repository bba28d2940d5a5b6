"""
Service protocol definitions (interfaces).

Defines the collaborators the decision core consumes but does not own,
using Python's typing.Protocol for structural subtyping:

- ITextAnalyzer: topic classification, relevance scoring and drift analysis
- IResponseGenerator: turns a positive decision into reply text
- IKeyedStore: get/set/append-by-key state store for per-user state
"""

from typing import Any, List, Optional, Protocol

from src.domain.models.analysis import DriftAnalysis, FlowAnalysis
from src.domain.models.conversation import ConversationContext
from src.domain.models.intervention import InterventionDecision


class ITextAnalyzer(Protocol):
    """
    Protocol for the external text-analysis service.

    Implementations may raise AnalysisError when a call yields no usable
    result; ContextAnalyzer converts that into a neutral default.
    """

    async def classify_topic(self, text: str) -> str:
        """
        Classify text into one topic label.

        Returns:
            Topic label (snake_case); the default topic when unknown
        """
        ...

    async def score_relevance(self, text: str) -> float:
        """
        Rate how relevant text is to the meeting's business focus.

        Returns:
            Relevance in [0, 1]

        Raises:
            AnalysisError: When no rating could be obtained
        """
        ...

    async def analyze_drift(
        self, earlier_text: str, recent_text: str, original_topic: str
    ) -> DriftAnalysis:
        """
        Judge whether recent text left the original topic.

        Returns:
            DriftAnalysis with is_drifting, severity and optional suggestion
        """
        ...

    async def analyze_text(self, text: str, prompt: str) -> str:
        """
        Run a free-form analysis prompt over text.

        Returns:
            Raw reply content for the caller to parse
        """
        ...


class IResponseGenerator(Protocol):
    """Protocol for the external reply generator."""

    async def generate(
        self,
        decision: InterventionDecision,
        context: ConversationContext,
        flow_analysis: Optional[FlowAnalysis] = None,
    ) -> str:
        """
        Produce the assistant's reply for a positive decision.

        Returns:
            Reply text to deliver into the conversation
        """
        ...


class IKeyedStore(Protocol):
    """Protocol for per-user state storage."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def append(self, key: str, item: Any, max_length: Optional[int] = None) -> int: ...

    def keys(self, prefix: str = "") -> List[str]: ...
