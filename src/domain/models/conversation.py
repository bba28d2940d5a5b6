"""Conversation domain models.

This module defines the per-session conversation state owned by the
decision core.

Core Models:
    - UserPreferences / Participant / AgendaItem: who is in the meeting and
      how proactive each person wants the assistant to be
    - ConversationContext: one per active session; message and intervention
      histories are append-only
    - TopicChange / ParticipantActivity: bookkeeping kept by
      ConversationContextTracker

Ownership:
    A ConversationContext belongs to exactly one session for the session's
    lifetime and is dropped when the session ends; nothing is persisted.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from src.core.exceptions import InterventionHistoryError
from src.domain.models.enums import (
    CommunicationStyle,
    ExpertiseArea,
    InformationType,
    InterventionFrequency,
    InterventionType,
    MeetingType,
    ParticipantRole,
)
from src.domain.models.intervention import InterventionRecord
from src.domain.models.message import ProcessedMessage


class UserPreferences(BaseModel):
    """Per-user preferences consulted by the decision engine."""

    intervention_frequency: InterventionFrequency = InterventionFrequency.MODERATE
    preferred_information_types: List[InformationType] = Field(default_factory=list)
    communication_style: CommunicationStyle = CommunicationStyle.CONVERSATIONAL
    topic_expertise: List[ExpertiseArea] = Field(default_factory=list)
    preferred_intervention_types: Optional[List[InterventionType]] = None
    max_interventions_per_hour: Optional[int] = Field(default=None, ge=0)
    learning_enabled: bool = True


class Participant(BaseModel):
    """A meeting participant."""

    id: str
    name: str = ""
    role: ParticipantRole = ParticipantRole.GUEST
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    engagement_level: float = Field(default=0.0, ge=0.0, le=1.0)


class AgendaItem(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    priority: int = 1
    estimated_duration_minutes: Optional[float] = None


class TopicChange(BaseModel):
    """A recorded shift of the session's current topic."""

    timestamp: datetime
    previous_topic: str
    new_topic: str
    confidence: float = Field(ge=0.0, le=1.0)
    trigger_message_id: str


class ParticipantActivity(BaseModel):
    """Running per-participant activity kept by the context tracker."""

    participant_id: str
    message_count: int = 0
    last_activity: Optional[datetime] = None
    average_response_time_seconds: float = 0.0
    sentiment_trend: float = Field(default=0.0, ge=-1.0, le=1.0)


class ConversationContext(BaseModel):
    """State of one active meeting session.

    Invariants:
        - message_history and intervention_history are append-only
        - intervention_history timestamps never decrease
    """

    session_id: str
    participants: List[Participant] = Field(default_factory=list)
    current_topic: str = "General Discussion"
    agenda: Optional[List[AgendaItem]] = None
    message_history: List[ProcessedMessage] = Field(default_factory=list)
    intervention_history: List[InterventionRecord] = Field(default_factory=list)
    start_time: datetime
    meeting_type: MeetingType = MeetingType.GENERAL_DISCUSSION

    @property
    def primary_participant_id(self) -> str:
        """First participant's id; "default" for an empty meeting."""
        return self.participants[0].id if self.participants else "default"

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def append_intervention(self, record: InterventionRecord) -> None:
        """Append an intervention, keeping timestamps non-decreasing.

        Raises:
            InterventionHistoryError: If record is older than the newest entry
        """
        if self.intervention_history:
            newest = self.intervention_history[-1].timestamp
            if record.timestamp < newest:
                raise InterventionHistoryError(
                    f"Intervention {record.id} at {record.timestamp.isoformat()} "
                    f"is older than the newest entry at {newest.isoformat()}"
                )
        self.intervention_history.append(record)
