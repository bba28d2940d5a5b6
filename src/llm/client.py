"""
LLM client for the text-analysis boundary.

Provides an async interface for the short classification and rating calls
made by TextAnalysisService, with:
- Structured logging of requests/responses
- One retry on timeout or rate limit
- Usage tracking (tokens)

Supported providers:
- anthropic: Claude models via the Messages API
- openai: any OpenAI-compatible chat-completions endpoint
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

import httpx
import structlog

from src.core.config import settings
from src.core.exceptions import LLMRateLimitError, LLMTimeoutError

log = structlog.get_logger(__name__)


LLMClientType = Literal["analysis"]


# =============================================================================
# Default configuration
# =============================================================================

# Analysis replies are a single number, a label or a small JSON object, so
# temperature is low and the token budget small.
# Override via LLM_ANALYSIS_PROVIDER / LLM_ANALYSIS_MODEL.

ANALYSIS_DEFAULTS = dict(
    provider="anthropic",
    model="claude-haiku-4-5",
    temperature=0.1,
    max_tokens=512,
)

OPENAI_DEFAULT_MODEL = "gpt-4o-mini"

DEFAULTS_MAP: Dict[LLMClientType, Dict[str, Any]] = {
    "analysis": ANALYSIS_DEFAULTS,
}


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers.

    Subclasses build the provider payload and parse its reply; the retry
    loop and logging are shared.
    """

    provider_name: str = "unknown"
    max_retries: int = 1  # 2 total attempts
    base_delay: float = 1.0  # seconds

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        client_type: LLMClientType,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.client_type = client_type

    @abstractmethod
    def _endpoint(self) -> str:
        """Full URL of the completion endpoint."""

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Request headers including authentication."""

    @abstractmethod
    def _build_payload(
        self,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """Provider-specific request body."""

    @abstractmethod
    def _parse_response(self, data: Dict[str, Any]) -> tuple[str, Dict[str, int]]:
        """Extract (content, usage) from the provider reply."""

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a completion with automatic retry on timeout/rate-limit.

        Args:
            prompt: User message
            system: Optional system prompt
            temperature: Sampling temperature (defaults to init value)
            max_tokens: Max tokens (defaults to init value)
            timeout: Optional timeout override in seconds

        Returns:
            LLMResponse with content and usage stats

        Raises:
            LLMTimeoutError: After all retries exhausted on timeout
            LLMRateLimitError: After all retries exhausted on rate limit (429)
            httpx.HTTPStatusError: On other API errors (no retry)
        """
        if temperature is None:
            temperature = self.temperature
        if max_tokens is None:
            max_tokens = self.max_tokens
        if timeout is None:
            timeout = self.timeout

        payload = self._build_payload(prompt, system, temperature, max_tokens)

        for attempt in range(self.max_retries + 1):
            start = time.perf_counter()

            log.debug(
                "llm_call_start",
                provider=self.provider_name,
                client_type=self.client_type,
                model=self.model,
                prompt_length=len(prompt),
                system_length=len(system) if system else 0,
                attempt=attempt + 1,
            )

            try:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(
                        self._endpoint(), headers=self._headers(), json=payload
                    )
                    response.raise_for_status()
                    data = response.json()

                latency_ms = (time.perf_counter() - start) * 1000
                content, usage = self._parse_response(data)

                log.info(
                    "llm_call_complete",
                    provider=self.provider_name,
                    client_type=self.client_type,
                    model=self.model,
                    latency_ms=round(latency_ms, 2),
                    input_tokens=usage.get("input_tokens", 0),
                    output_tokens=usage.get("output_tokens", 0),
                    attempt=attempt + 1,
                )

                return LLMResponse(
                    content=content,
                    model=data.get("model", self.model),
                    usage=usage,
                    latency_ms=latency_ms,
                    raw_response=data,
                )

            except httpx.TimeoutException as e:
                log.warning(
                    "llm_timeout",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                    timeout_seconds=timeout,
                )
                if attempt >= self.max_retries:
                    raise LLMTimeoutError(
                        f"LLM call timed out after {self.max_retries + 1} attempts "
                        f"(timeout={timeout}s)"
                    ) from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code != 429:
                    log.error(
                        "llm_http_error",
                        provider=self.provider_name,
                        status_code=status_code,
                    )
                    raise
                log.warning(
                    "llm_rate_limit", provider=self.provider_name, attempt=attempt + 1
                )
                if attempt >= self.max_retries:
                    raise LLMRateLimitError(
                        f"Rate limit exceeded after {self.max_retries + 1} attempts"
                    ) from e

            delay = self.base_delay * (2**attempt)
            log.info("llm_retry", delay_seconds=delay, next_attempt=attempt + 2)
            await asyncio.sleep(delay)

        # Unreachable: loop either returns LLMResponse or raises an exception
        assert False, "unreachable"


# =============================================================================
# Anthropic Client
# =============================================================================


class AnthropicClient(LLMClient):
    """Anthropic Claude API client (Messages API)."""

    provider_name = "anthropic"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        client_type: LLMClientType,
        api_key: Optional[str] = None,
    ):
        """
        Raises:
            ValueError: If API key is not configured
        """
        super().__init__(model, temperature, max_tokens, timeout, client_type)
        self.api_key = api_key or settings.anthropic_api_key
        self.base_url = "https://api.anthropic.com/v1"

        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY not configured. Set it in .env.")

        log.info(
            "anthropic_client_initialized",
            client_type=self.client_type,
            model=self.model,
            timeout=self.timeout,
        )

    def _endpoint(self) -> str:
        return f"{self.base_url}/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "content-type": "application/json",
            "anthropic-version": "2023-06-01",
        }

    def _build_payload(self, prompt, system, temperature, max_tokens):
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            payload["system"] = system
        return payload

    def _parse_response(self, data):
        content = ""
        if data.get("content"):
            content = data["content"][0].get("text", "")
        usage = {
            "input_tokens": data.get("usage", {}).get("input_tokens", 0),
            "output_tokens": data.get("usage", {}).get("output_tokens", 0),
        }
        return content, usage


# =============================================================================
# OpenAI-Compatible Client
# =============================================================================


class OpenAICompatibleClient(LLMClient):
    """
    Client for providers that follow the OpenAI chat-completions format.

    The base URL comes from settings.openai_base_url, so the same class
    covers OpenAI itself and compatible hosts.
    """

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        client_type: LLMClientType,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(model, temperature, max_tokens, timeout, client_type)
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")

        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not configured. Set it in .env.")

        log.info(
            "openai_compatible_client_initialized",
            base_url=self.base_url,
            client_type=self.client_type,
            model=self.model,
            timeout=self.timeout,
        )

    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt, system, temperature, max_tokens):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def _parse_response(self, data):
        content = ""
        if data.get("choices"):
            content = data["choices"][0].get("message", {}).get("content", "")
        usage = {
            "input_tokens": data.get("usage", {}).get("prompt_tokens", 0),
            "output_tokens": data.get("usage", {}).get("completion_tokens", 0),
        }
        return content, usage


# =============================================================================
# Client Factory Functions
# =============================================================================


def get_llm_client(client_type: LLMClientType) -> LLMClient:
    """
    Factory for LLM client based on client type.

    Uses the defaults above with optional environment overrides
    (LLM_ANALYSIS_PROVIDER, LLM_ANALYSIS_MODEL).

    Raises:
        ValueError: If unknown provider configured or API key missing
    """
    defaults = DEFAULTS_MAP[client_type]

    provider = (
        getattr(settings, f"llm_{client_type}_provider", None) or defaults["provider"]
    )
    model = getattr(settings, f"llm_{client_type}_model", None)
    timeout = settings.llm_timeout_seconds

    if provider == "anthropic":
        return AnthropicClient(
            model=model or defaults["model"],
            temperature=defaults["temperature"],
            max_tokens=defaults["max_tokens"],
            timeout=timeout,
            client_type=client_type,
        )
    elif provider == "openai":
        return OpenAICompatibleClient(
            model=model or OPENAI_DEFAULT_MODEL,
            temperature=defaults["temperature"],
            max_tokens=defaults["max_tokens"],
            timeout=timeout,
            client_type=client_type,
        )
    else:
        raise ValueError(
            f"Unknown LLM provider '{provider}' for {client_type}. "
            f"Supported providers: anthropic, openai"
        )


def get_analysis_llm_client() -> LLMClient:
    """Factory for the text-analysis LLM client."""
    return get_llm_client("analysis")
