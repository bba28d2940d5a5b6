"""Pause and momentum models.

Transient values computed by TimingAnalyzer from the tail of the message
history. Durations are in seconds.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.models.enums import MomentumDirection, PauseType


class ConversationPause(BaseModel):
    """A gap between two consecutive messages long enough to matter."""

    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: float = Field(ge=0.0)
    type: PauseType
    confidence: float = Field(ge=0.0, le=1.0)


class ConversationMomentum(BaseModel):
    """Rate and acceleration of message exchange.

    velocity is messages per minute; acceleration is the velocity change
    between the halves of the momentum window.
    """

    velocity: float = 0.0
    acceleration: float = 0.0
    engagement: float = Field(default=0.0, ge=0.0, le=1.0)
    intensity: float = Field(default=0.0, ge=0.0, le=1.0)
    direction: MomentumDirection = MomentumDirection.STABLE


class InterventionTiming(BaseModel):
    """Whether now is a good moment to speak."""

    is_good_time: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    suggested_delay_seconds: Optional[float] = None
    pause_detected: Optional[ConversationPause] = None


class ResponsePattern(BaseModel):
    average_response_time_seconds: float = 0.0
    response_time_variance: float = 0.0
    message_length: int = 0
    recent_activity: bool = False


class ParticipantEngagement(BaseModel):
    participant_id: str
    is_actively_engaged: bool
    last_activity: Optional[datetime] = None
    response_pattern: ResponsePattern = Field(default_factory=ResponsePattern)
    engagement_level: float = Field(default=0.0, ge=0.0)


class TimingWindow(BaseModel):
    min_delay_seconds: float = Field(ge=0.0)
    max_delay_seconds: float = Field(ge=0.0)
    optimal_delay_seconds: float = Field(ge=0.0)


class PauseTimingStrategy(BaseModel):
    """Wait window for an intervention of a given urgency."""

    should_wait_for_pause: bool
    max_wait_seconds: float = Field(ge=0.0)
    intervention_urgency: float = Field(ge=0.0, le=1.0)
    preferred_timing_window: TimingWindow
