"""Tests for exception hierarchy."""

import pytest


def test_exception_hierarchy():
    """All exceptions inherit from InterventionCoreError."""
    from src.core.exceptions import (
        AnalysisError,
        ConfigurationError,
        FeedbackAlreadyRecordedError,
        InterventionCoreError,
        InterventionError,
        InterventionHistoryError,
        LLMError,
        LLMRateLimitError,
        LLMResponseParseError,
        LLMTimeoutError,
        SessionAlreadyExistsError,
        SessionError,
        SessionNotFoundError,
    )

    assert issubclass(ConfigurationError, InterventionCoreError)
    assert issubclass(LLMError, InterventionCoreError)
    assert issubclass(LLMTimeoutError, LLMError)
    assert issubclass(LLMRateLimitError, LLMError)
    assert issubclass(LLMResponseParseError, LLMError)
    assert issubclass(AnalysisError, InterventionCoreError)
    assert issubclass(SessionNotFoundError, SessionError)
    assert issubclass(SessionAlreadyExistsError, SessionError)
    assert issubclass(InterventionHistoryError, InterventionError)
    assert issubclass(FeedbackAlreadyRecordedError, InterventionError)


def test_exceptions_carry_message():
    """Exceptions can be raised and caught, keeping their message."""
    from src.core.exceptions import SessionNotFoundError

    with pytest.raises(SessionNotFoundError) as exc_info:
        raise SessionNotFoundError("Session test-123 not found")

    assert exc_info.value.message == "Session test-123 not found"
    assert str(exc_info.value) == "Session test-123 not found"
