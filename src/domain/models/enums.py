"""Enumerations shared across the intervention core."""

from enum import Enum


class ParticipantRole(str, Enum):
    """Role of a meeting participant."""

    PARTNER = "partner"
    PRINCIPAL = "principal"
    ANALYST = "analyst"
    ENTREPRENEUR = "entrepreneur"
    GUEST = "guest"


class InterventionType(str, Enum):
    """Kind of proactive contribution the assistant can make."""

    TOPIC_REDIRECT = "topic_redirect"
    INFORMATION_PROVIDE = "information_provide"
    FACT_CHECK = "fact_check"
    CLARIFICATION_REQUEST = "clarification_request"
    SUMMARY_OFFER = "summary_offer"


class Priority(str, Enum):
    """Priority tier of an intervention decision."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class UrgencyLevel(str, Enum):
    """Urgency of a message or of detected topic drift."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MeetingType(str, Enum):
    """Meeting-type tag of a session."""

    INVESTMENT_REVIEW = "investment_review"
    PORTFOLIO_UPDATE = "portfolio_update"
    STRATEGY_SESSION = "strategy_session"
    DUE_DILIGENCE = "due_diligence"
    GENERAL_DISCUSSION = "general_discussion"


class InterventionFrequency(str, Enum):
    """How often a user wants the assistant to speak up.

    Declaration order is the ordinal scale used for tier shifting.
    """

    MINIMAL = "minimal"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class InformationType(str, Enum):
    """Categories of information a user likes to receive."""

    MARKET_DATA = "market_data"
    COMPANY_INFO = "company_info"
    FINANCIAL_METRICS = "financial_metrics"
    INDUSTRY_TRENDS = "industry_trends"
    COMPETITIVE_ANALYSIS = "competitive_analysis"


class CommunicationStyle(str, Enum):
    FORMAL = "formal"
    CONVERSATIONAL = "conversational"
    BRIEF = "brief"
    DETAILED = "detailed"


class ExpertiseArea(str, Enum):
    FINTECH = "fintech"
    HEALTHCARE = "healthcare"
    ENTERPRISE_SOFTWARE = "enterprise_software"
    CONSUMER_TECH = "consumer_tech"
    DEEP_TECH = "deep_tech"
    BIOTECH = "biotech"


class ActivityLevel(str, Enum):
    """Manual override of how proactive the assistant is for a user."""

    SILENT = "silent"
    QUIET = "quiet"
    NORMAL = "normal"
    ACTIVE = "active"


class MomentumDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class PauseType(str, Enum):
    """Classification of a gap between two consecutive messages."""

    NATURAL_BREAK = "natural_break"
    TOPIC_TRANSITION = "topic_transition"
    THINKING_PAUSE = "thinking_pause"
    DISCUSSION_END = "discussion_end"
    EXTENDED_SILENCE = "extended_silence"


class UserReactionType(str, Enum):
    """Observed reaction to an intervention (explicit or inferred)."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    IGNORED = "ignored"
    DISMISSED = "dismissed"
    ACKNOWLEDGED = "acknowledged"


class ConversationOutcome(str, Enum):
    """Effect an intervention had on the conversation."""

    IMPROVED_FOCUS = "improved_focus"
    PROVIDED_VALUE = "provided_value"
    DISRUPTED_FLOW = "disrupted_flow"
    NO_IMPACT = "no_impact"
    NEGATIVE_IMPACT = "negative_impact"


class RedirectionApproach(str, Enum):
    GENTLE_REMINDER = "gentle_reminder"
    CONTEXT_SUMMARY = "context_summary"
    DIRECT_REDIRECT = "direct_redirect"
    AGENDA_REFERENCE = "agenda_reference"
