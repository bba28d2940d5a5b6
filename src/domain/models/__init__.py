"""Domain models package."""

from .enums import (
    ActivityLevel,
    CommunicationStyle,
    ConversationOutcome,
    ExpertiseArea,
    InformationType,
    InterventionFrequency,
    InterventionType,
    MeetingType,
    MomentumDirection,
    ParticipantRole,
    PauseType,
    Priority,
    RedirectionApproach,
    UrgencyLevel,
    UserReactionType,
)
from .message import ChatMessage, Entity, ProcessedMessage, SentimentScore, TopicCategory
from .learning import (
    BehaviorAdjustment,
    EffectivenessScore,
    FeedbackRecord,
    InterventionPattern,
    LearningMetrics,
    ThresholdAdjustments,
    UserFeedback,
    UserReaction,
)
from .intervention import (
    ConversationState,
    InterventionDecision,
    InterventionRecord,
    TimingStrategy,
)
from .conversation import (
    AgendaItem,
    ConversationContext,
    Participant,
    ParticipantActivity,
    TopicChange,
    UserPreferences,
)
from .analysis import (
    ConversationHealth,
    DriftAnalysis,
    EngagementMetrics,
    FlowAnalysis,
    InformationGap,
    MomentumIndicator,
    RedirectionStrategy,
    TopicDriftResult,
)
from .timing import (
    ConversationMomentum,
    ConversationPause,
    InterventionTiming,
    ParticipantEngagement,
    PauseTimingStrategy,
    ResponsePattern,
    TimingWindow,
)
from .activity import ActivityLevelChange

__all__ = [
    "ActivityLevel",
    "CommunicationStyle",
    "ConversationOutcome",
    "ExpertiseArea",
    "InformationType",
    "InterventionFrequency",
    "InterventionType",
    "MeetingType",
    "MomentumDirection",
    "ParticipantRole",
    "PauseType",
    "Priority",
    "RedirectionApproach",
    "UrgencyLevel",
    "UserReactionType",
    "ChatMessage",
    "Entity",
    "ProcessedMessage",
    "SentimentScore",
    "TopicCategory",
    "BehaviorAdjustment",
    "EffectivenessScore",
    "FeedbackRecord",
    "InterventionPattern",
    "LearningMetrics",
    "ThresholdAdjustments",
    "UserFeedback",
    "UserReaction",
    "ConversationState",
    "InterventionDecision",
    "InterventionRecord",
    "TimingStrategy",
    "AgendaItem",
    "ConversationContext",
    "Participant",
    "ParticipantActivity",
    "TopicChange",
    "UserPreferences",
    "ConversationHealth",
    "DriftAnalysis",
    "EngagementMetrics",
    "FlowAnalysis",
    "InformationGap",
    "MomentumIndicator",
    "RedirectionStrategy",
    "TopicDriftResult",
    "ConversationMomentum",
    "ConversationPause",
    "InterventionTiming",
    "ParticipantEngagement",
    "PauseTimingStrategy",
    "ResponsePattern",
    "TimingWindow",
    "ActivityLevelChange",
]
