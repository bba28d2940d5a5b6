"""Learning-loop domain models.

Values derived from intervention feedback. Aggregates (ThresholdAdjustments,
LearningMetrics, InterventionPattern) are recomputed on demand from the
feedback and intervention collections and never edited by hand.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.domain.models.enums import (
    ConversationOutcome,
    InterventionType,
    UserReactionType,
)


class UserReaction(BaseModel):
    """Reaction to an intervention.

    explicit=True for direct feedback, False when inferred from behaviour;
    confidence qualifies inferred reactions.
    """

    type: UserReactionType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    explicit: bool = True
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    context: Optional[str] = None


class EffectivenessScore(BaseModel):
    """Post-hoc rating of how well an intervention landed."""

    overall: float = Field(ge=0.0, le=1.0)
    timing: float = Field(ge=0.0, le=1.0)
    relevance: float = Field(ge=0.0, le=1.0)
    tone: float = Field(ge=0.0, le=1.0)
    outcome: ConversationOutcome


class FeedbackRecord(BaseModel):
    """One labelled outcome stored per user."""

    id: str
    user_id: str
    intervention_id: str
    intervention_type: InterventionType
    reaction: UserReaction
    conversation_context: str
    timestamp: datetime
    effectiveness: Optional[EffectivenessScore] = None


class InterventionPattern(BaseModel):
    """Trigger context that reliably leads to successful interventions."""

    pattern: str
    success_rate: float = Field(ge=0.0, le=1.0)
    contexts: List[str] = Field(default_factory=list)
    intervention_types: List[InterventionType] = Field(default_factory=list)
    user_ids: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)


class ThresholdAdjustments(BaseModel):
    """Per-user thresholds consumed by the decision engine."""

    intervention_threshold: float = Field(ge=0.0, le=1.0)
    confidence_threshold: float = Field(ge=0.0, le=1.0)
    timing_threshold: float = Field(ge=0.0, le=1.0)
    type_preferences: Dict[InterventionType, float] = Field(default_factory=dict)


class LearningMetrics(BaseModel):
    """Rolling per-user learning metrics."""

    total_interventions: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    average_effectiveness: float = Field(default=0.0, ge=0.0, le=1.0)
    user_satisfaction: float = Field(default=0.5, ge=0.0, le=1.0)
    improvement_trend: float = Field(default=0.0, ge=-1.0, le=1.0)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BehaviorAdjustment(BaseModel):
    """Suggested behaviour change after a piece of feedback."""

    intervention_threshold: float = Field(ge=0.0, le=1.0)
    frequency_multiplier: float = Field(gt=0.0)
    preferred_types: List[InterventionType] = Field(default_factory=list)
    reasoning: str = ""


class UserFeedback(BaseModel):
    """Explicit 1-5 rating of one intervention."""

    intervention_id: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
