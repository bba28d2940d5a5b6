"""
Prompts for conversation text analysis.

Each analysis call sends the conversation text plus a task prompt and expects
one of three reply shapes:
- a bare topic label (classification)
- a bare number between 0 and 1 (relevance, productivity, focus)
- a small JSON object or array (drift, information gaps, redirection)

Parsers here never raise on malformed replies except parse_json_object /
parse_json_array, which raise LLMResponseParseError so callers can fall back
to their neutral default.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

from src.core.exceptions import LLMResponseParseError


ANALYSIS_SYSTEM_PROMPT = (
    "You analyse live venture-capital meeting chat for an assistant that "
    "decides when to contribute. Answer exactly in the requested format with "
    "no commentary."
)


# =============================================================================
# Prompt builders
# =============================================================================


def get_topic_prompt(conversation_text: str, topics: Sequence[str]) -> str:
    """Prompt asking for the single most prominent topic label."""
    return f"""Classify this VC conversation into one of these categories:
{", ".join(topics)}

Return only the category name that best fits the conversation.
If the conversation covers multiple topics, return the most prominent one.
If the conversation is not related to VC topics, return "off_topic".

Conversation: {conversation_text}"""


def get_relevance_prompt(text: str) -> str:
    """Prompt asking for a 0-1 investment relevance rating."""
    return f"""Rate how relevant this text is to venture capital investment discussions on a scale of 0-1.

High relevance: investment opportunities, companies, markets, financial metrics,
valuations, business models, team assessment, product strategy, competitive
analysis, due diligence, risk assessment, portfolio management.
Low relevance: personal anecdotes, weather, sports, unrelated small talk.

Return only a number between 0 and 1.

Text: {text}"""


def get_drift_prompt(original_topic: str, earlier_text: str, recent_text: str) -> str:
    """Prompt asking whether recent messages drifted from the original topic."""
    return f"""Analyze if this VC conversation has drifted from its original topic.

Original topic: {original_topic}
Original conversation: {earlier_text}
Recent conversation: {recent_text}

Return a JSON object with:
{{
  "is_drifting": boolean,
  "severity": number (0-1 scale),
  "suggested_redirection": "optional suggestion to get back on track"
}}

Judge severity by how far the discussion moved from the original topic and
whether the tangent is still useful for an investment decision."""


def get_information_gaps_prompt(conversation_text: str) -> str:
    return f"""Identify information gaps in this VC conversation that additional data or clarification would fill.
Focus on:
1. Missing financial metrics or market data
2. Unverified claims that need fact-checking
3. Incomplete competitive analysis
4. Missing team or product details
5. Unclear investment terms or valuations

Return a JSON array: [{{"type": "gap_type", "description": "what's missing", "priority": 1-10}}]

Conversation: {conversation_text}"""


def get_productivity_prompt(conversation_text: str) -> str:
    return f"""Rate the productivity of this VC conversation on a scale of 0-1.
Are participants making progress toward investment decisions, sharing useful
information and identifying next steps?

Return only a number between 0 and 1.

Conversation: {conversation_text}"""


def get_focus_prompt(conversation_text: str) -> str:
    return f"""Rate how focused this VC conversation is on a scale of 0-1.
Is it staying on investment topics and keeping a clear thread?

Return only a number between 0 and 1.

Conversation: {conversation_text}"""


def get_redirection_prompt(original_topic: str, current_topic: str) -> str:
    """Prompt asking for a diplomatic way back to the original topic."""
    return f"""Generate a diplomatic redirection to guide a VC conversation back on track.

Original topic: {original_topic}
Current topic: {current_topic}

The redirection should briefly acknowledge the current discussion, recall the
original topic and suggest returning to it while keeping the group positive.

Return a JSON object with:
{{
  "approach": "gentle_reminder|context_summary|direct_redirect|agenda_reference",
  "message": "the redirection message",
  "context_summary": "brief summary of the original discussion",
  "diplomatic_level": number (0-1, where 1 is most gentle)
}}"""


# =============================================================================
# Reply parsers
# =============================================================================


def _strip_markdown_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_score(
    response_text: str, default: Optional[float] = 0.5
) -> Optional[float]:
    """Parse a bare 0-1 rating, clamped; default when no number is present."""
    match = re.search(r"-?\d+(?:\.\d+)?", response_text)
    if not match:
        return default
    return max(0.0, min(1.0, float(match.group(0))))


def parse_topic_label(response_text: str) -> str:
    """Normalise a topic reply to a snake_case label."""
    return re.sub(r"[^a-z_]", "", response_text.strip().lower())


def parse_json_object(response_text: str) -> Dict[str, Any]:
    """
    Extract the first JSON object from a reply.

    Raises:
        LLMResponseParseError: If no valid JSON object is present
    """
    text = _strip_markdown_fences(response_text)
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        raise LLMResponseParseError(f"No JSON object in reply: {text[:100]}")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMResponseParseError(f"Invalid JSON object: {e}") from e
    if not isinstance(data, dict):
        raise LLMResponseParseError("Reply JSON is not an object")
    return data


def parse_json_array(response_text: str) -> List[Any]:
    """
    Extract the first JSON array from a reply.

    Raises:
        LLMResponseParseError: If no valid JSON array is present
    """
    text = _strip_markdown_fences(response_text)
    match = re.search(r"\[.*\]", text, re.DOTALL)
    if not match:
        raise LLMResponseParseError(f"No JSON array in reply: {text[:100]}")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMResponseParseError(f"Invalid JSON array: {e}") from e
    if not isinstance(data, list):
        raise LLMResponseParseError("Reply JSON is not an array")
    return data


def coerce_unit_float(value: Any, default: float) -> float:
    """Clamp a JSON value to [0, 1], using default for non-numbers."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(0.0, min(1.0, number))


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
