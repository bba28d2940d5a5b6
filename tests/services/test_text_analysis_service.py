"""
Tests for TextAnalysisService.

The LLM client is mocked; tests cover reply parsing, the neutral defaults
returned on errors, timeouts and unusable replies, and the AnalysisError
raised where no neutral value exists.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.exceptions import AnalysisError, LLMTimeoutError
from src.llm.client import LLMResponse
from src.services.text_analysis_service import TextAnalysisService


def _service(reply=None, side_effect=None, timeout=1.0) -> TextAnalysisService:
    llm = MagicMock()
    llm.complete = AsyncMock(
        return_value=LLMResponse(content=reply or "", model="test"),
        side_effect=side_effect,
    )
    return TextAnalysisService(
        llm_client=llm,
        topics=["valuation", "market_analysis", "general_discussion"],
        default_topic="general_discussion",
        call_timeout_seconds=timeout,
    )


class TestClassifyTopic:
    async def test_known_label(self):
        service = _service("Valuation")

        assert await service.classify_topic("What is the pre-money?") == "valuation"

    async def test_unknown_label_falls_back(self):
        service = _service("weather_chat")

        assert await service.classify_topic("Nice day") == "general_discussion"

    async def test_llm_error_falls_back(self):
        service = _service(side_effect=LLMTimeoutError("timed out"))

        assert await service.classify_topic("anything") == "general_discussion"

    async def test_prompt_sent_with_system_prompt(self):
        service = _service("valuation")

        await service.classify_topic("cap table")

        kwargs = service.llm.complete.call_args.kwargs
        assert "cap table" in kwargs["prompt"]
        assert kwargs["system"]


class TestScoreRelevance:
    async def test_parses_score(self):
        assert await _service("0.85").score_relevance("ARR grew 3x") == 0.85

    async def test_unparseable_reply_raises(self):
        with pytest.raises(AnalysisError):
            await _service("not sure").score_relevance("lunch?")

    async def test_timeout_raises(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        service = _service(side_effect=slow, timeout=0.01)

        with pytest.raises(AnalysisError, match="timed out"):
            await service.score_relevance("hello")

    async def test_unexpected_error_raises(self):
        service = _service(side_effect=RuntimeError("connection reset"))

        with pytest.raises(AnalysisError, match="connection reset"):
            await service.score_relevance("hello")


class TestAnalyzeDrift:
    async def test_parses_camel_case_reply(self):
        reply = '{"isDrifting": true, "severity": 0.7, "suggestedRedirection": "Back to valuation"}'

        drift = await _service(reply).analyze_drift("earlier", "recent", "valuation")

        assert drift.is_drifting is True
        assert drift.severity == pytest.approx(0.7)
        assert drift.suggestion == "Back to valuation"

    async def test_invalid_json_is_not_drifting(self):
        drift = await _service("The conversation drifted").analyze_drift("a", "b", "c")

        assert drift.is_drifting is False
        assert drift.severity == 0.0
        assert drift.suggestion is None


class TestAnalyzeText:
    async def test_returns_raw_reply(self):
        assert await _service("[1, 2]").analyze_text("t", "prompt") == "[1, 2]"

    async def test_failure_raises_analysis_error(self):
        service = _service(side_effect=LLMTimeoutError("timed out"))

        with pytest.raises(AnalysisError):
            await service.analyze_text("t", "prompt")
