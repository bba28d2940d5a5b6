"""Intervention domain models.

Core Models:
    - InterventionRecord: one per intervention actually issued; reaction and
      effectiveness are attached exactly once by the learning loop
    - InterventionDecision: transient result of one evaluation
    - TimingStrategy: how long to wait and how willing to interrupt
    - ConversationState: live conversation snapshot used for timing
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.core.exceptions import FeedbackAlreadyRecordedError
from src.domain.models.enums import InterventionType, Priority
from src.domain.models.learning import EffectivenessScore, UserReaction


class InterventionRecord(BaseModel):
    """An intervention the assistant actually made."""

    id: str
    timestamp: datetime
    type: InterventionType
    trigger: str = Field(description="Excerpt of the message that triggered it")
    response: str = ""
    conversation_id: str
    user_id: str
    user_reaction: Optional[UserReaction] = None
    effectiveness: Optional[EffectivenessScore] = None

    @property
    def has_feedback(self) -> bool:
        return self.user_reaction is not None

    def attach_feedback(
        self, reaction: UserReaction, effectiveness: EffectivenessScore
    ) -> None:
        """Attach the labelled outcome.

        Raises:
            FeedbackAlreadyRecordedError: If feedback was attached before
        """
        if self.has_feedback:
            raise FeedbackAlreadyRecordedError(
                f"Feedback already recorded for intervention {self.id}"
            )
        self.user_reaction = reaction
        self.effectiveness = effectiveness


class InterventionDecision(BaseModel):
    """Whether to speak now, about what, with what confidence and priority."""

    should_respond: bool
    intervention_type: InterventionType
    confidence: float = Field(ge=0.0, le=1.0)
    priority: Priority
    reasoning: str

    @classmethod
    def no_intervention(cls, reasoning: str) -> "InterventionDecision":
        """Canonical negative decision."""
        return cls(
            should_respond=False,
            intervention_type=InterventionType.CLARIFICATION_REQUEST,
            confidence=0.0,
            priority=Priority.LOW,
            reasoning=reasoning,
        )


class ConversationState(BaseModel):
    """Live conversation snapshot supplied by the host."""

    is_active: bool
    last_message_time: datetime
    pause_duration_seconds: float = Field(default=0.0, ge=0.0)
    current_speaker: Optional[str] = None


class TimingStrategy(BaseModel):
    """When and how softly to deliver a decided intervention."""

    delay_seconds: int = Field(ge=0)
    wait_for_pause: bool
    interrupt_threshold: float = Field(ge=0.0, le=1.0)
    reasoning: str
