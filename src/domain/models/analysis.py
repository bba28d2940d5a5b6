"""Signal aggregation models.

Transient values produced by ContextAnalyzer from the tail of the message
history. They carry no identity and are recomputed on every evaluation.
"""

from typing import Optional

from pydantic import BaseModel, Field

from src.domain.models.enums import (
    MomentumDirection,
    RedirectionApproach,
    UrgencyLevel,
)


class EngagementMetrics(BaseModel):
    """Conversation-level engagement over the flow window."""

    average_response_time_seconds: float = Field(default=0.0, ge=0.0)
    message_frequency: float = Field(
        default=0.0, ge=0.0, description="Messages per minute"
    )
    participation_balance: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Least active participant's count over the most active one's",
    )


class MomentumIndicator(BaseModel):
    """Coarse trend of message frequency."""

    direction: MomentumDirection = MomentumDirection.STABLE
    strength: float = Field(default=0.0, ge=0.0, le=1.0)


class FlowAnalysis(BaseModel):
    """Aggregated per-conversation signals for one evaluation."""

    current_topic: str
    topic_stability: float = Field(ge=0.0, le=1.0)
    participant_engagement: EngagementMetrics = Field(default_factory=EngagementMetrics)
    conversation_momentum: MomentumIndicator = Field(default_factory=MomentumIndicator)
    messages_off_topic: int = Field(default=0, ge=0)
    intervention_recommended: bool = False


class DriftAnalysis(BaseModel):
    """Raw verdict returned by the text-analysis service."""

    is_drifting: bool = False
    severity: float = Field(default=0.0, ge=0.0, le=1.0)
    suggestion: Optional[str] = None


class TopicDriftResult(BaseModel):
    """Whether and how badly the conversation has left its topic."""

    is_drifting: bool
    original_topic: str
    current_direction: str
    drift_severity: float = Field(ge=0.0, le=1.0)
    messages_off_topic: int = Field(ge=0)
    suggested_redirection: Optional[str] = None
    urgency_level: UrgencyLevel = UrgencyLevel.LOW
    should_intervene_immediately: bool = False


class InformationGap(BaseModel):
    type: str
    description: str
    priority: int = Field(ge=1, le=10)


class ConversationHealth(BaseModel):
    overall: float = Field(ge=0.0, le=1.0)
    engagement: float = Field(ge=0.0, le=1.0)
    productivity: float = Field(ge=0.0, le=1.0)
    focus: float = Field(ge=0.0, le=1.0)


class RedirectionStrategy(BaseModel):
    """How to steer the conversation back; diplomatic_level 1.0 is gentlest."""

    approach: RedirectionApproach
    message: str
    context_summary: str
    diplomatic_level: float = Field(ge=0.0, le=1.0)
