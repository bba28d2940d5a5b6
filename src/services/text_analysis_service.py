"""
Text analysis service backed by an LLM.

Implements ITextAnalyzer for ContextAnalyzer:
1. Build the task prompt
2. Call the analysis LLM under a per-call timeout
3. Parse the reply into a label, score or DriftAnalysis

Graceful degradation: classification and drift return neutral defaults
(default topic, not drifting) on LLM errors, timeouts or unparseable replies.
score_relevance and analyze_text raise AnalysisError instead and leave the
fallback to the caller: a relevance that could not be scored counts as
on-topic there, never as a mid-range rating.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from src.core.config import intervention_config, settings
from src.core.exceptions import AnalysisError, LLMError
from src.domain.models.analysis import DriftAnalysis
from src.llm.client import LLMClient, get_analysis_llm_client
from src.llm.prompts.analysis import (
    ANALYSIS_SYSTEM_PROMPT,
    coerce_unit_float,
    get_drift_prompt,
    get_relevance_prompt,
    get_topic_prompt,
    optional_str,
    parse_json_object,
    parse_score,
    parse_topic_label,
)

log = structlog.get_logger(__name__)


class TextAnalysisService:
    """LLM-backed topic, relevance and drift analysis."""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        topics: Optional[Sequence[str]] = None,
        default_topic: Optional[str] = None,
        call_timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            llm_client: LLM client instance (creates default if None)
            topics: Allowed topic labels (defaults to analyzer config)
            default_topic: Label used when classification fails
            call_timeout_seconds: Upper bound per call (defaults to settings)
        """
        self.llm = llm_client or get_analysis_llm_client()
        self.topics = list(topics or intervention_config.analyzer.topics)
        self.default_topic = default_topic or intervention_config.analyzer.default_topic
        self.call_timeout = (
            call_timeout_seconds or settings.analysis_call_timeout_seconds
        )

    async def _complete(self, prompt: str, operation: str) -> str:
        """Call the LLM under the per-call timeout.

        Raises:
            AnalysisError: On LLM error, HTTP error or timeout
        """
        try:
            response = await asyncio.wait_for(
                self.llm.complete(prompt=prompt, system=ANALYSIS_SYSTEM_PROMPT),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise AnalysisError(
                f"{operation} timed out after {self.call_timeout}s"
            ) from e
        except LLMError as e:
            raise AnalysisError(f"{operation} failed: {e.message}") from e
        except Exception as e:
            # httpx status errors and transport failures from the client
            raise AnalysisError(f"{operation} failed: {e}") from e
        return response.content

    async def classify_topic(self, text: str) -> str:
        try:
            reply = await self._complete(
                get_topic_prompt(text, self.topics), "classify_topic"
            )
        except AnalysisError as e:
            log.warning("topic_classification_failed", error=str(e))
            return self.default_topic

        label = parse_topic_label(reply)
        if label not in self.topics:
            log.debug("topic_label_unknown", label=label, fallback=self.default_topic)
            return self.default_topic
        return label

    async def score_relevance(self, text: str) -> float:
        """
        Raises:
            AnalysisError: On LLM failure or a reply without a rating, so
                callers can treat the text as on-topic
        """
        reply = await self._complete(get_relevance_prompt(text), "score_relevance")
        score = parse_score(reply, default=None)
        if score is None:
            log.warning("relevance_reply_unparseable", reply=reply[:100])
            raise AnalysisError("score_relevance reply has no rating")
        return score

    async def analyze_drift(
        self, earlier_text: str, recent_text: str, original_topic: str
    ) -> DriftAnalysis:
        try:
            reply = await self._complete(
                get_drift_prompt(original_topic, earlier_text, recent_text),
                "analyze_drift",
            )
            data = parse_json_object(reply)
        except (AnalysisError, LLMError) as e:
            log.warning("drift_analysis_failed", error=str(e))
            return DriftAnalysis()

        return DriftAnalysis(
            is_drifting=bool(data.get("is_drifting", data.get("isDrifting", False))),
            severity=coerce_unit_float(data.get("severity"), 0.0),
            suggestion=optional_str(
                data.get("suggested_redirection", data.get("suggestedRedirection"))
            ),
        )

    async def analyze_text(self, text: str, prompt: str) -> str:
        """
        Run a free-form analysis prompt.

        Raises:
            AnalysisError: If the call fails or times out
        """
        log.debug("analyze_text", text_length=len(text), prompt_length=len(prompt))
        return await self._complete(prompt, "analyze_text")
