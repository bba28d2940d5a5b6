"""
Custom exception hierarchy for the intervention core.

All application exceptions inherit from InterventionCoreError.

Policy refusals (rate limits, cooldowns, manual overrides) are NOT exceptions:
they are returned as no-intervention decisions with a reason string.
"""


class InterventionCoreError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(InterventionCoreError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(InterventionCoreError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    pass


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(InterventionCoreError):
    """Text analysis produced no usable result.

    Raised inside the text-analysis boundary and converted to a neutral
    default before it reaches the decision pipeline.
    """

    pass


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(InterventionCoreError):
    """Session-related error."""

    pass


class SessionNotFoundError(SessionError):
    """Session does not exist."""

    pass


class SessionAlreadyExistsError(SessionError):
    """Attempted to start a session id that is already active."""

    pass


# =============================================================================
# Intervention Errors
# =============================================================================


class InterventionError(InterventionCoreError):
    """Intervention bookkeeping error."""

    pass


class InterventionHistoryError(InterventionError):
    """Intervention history would stop being timestamp-ordered."""

    pass


class FeedbackAlreadyRecordedError(InterventionError):
    """Reaction/effectiveness already attached to this intervention."""

    pass
