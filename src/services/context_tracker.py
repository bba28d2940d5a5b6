"""
Conversation context tracking.

ConversationContextTracker owns one session's ConversationContext and keeps
the bookkeeping around it: bounded message history, per-participant
activity, topic changes inferred from message classifications and a 0-1
momentum figure over the last five minutes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from src.core.config import ContextConfig, intervention_config
from src.domain.models.conversation import (
    AgendaItem,
    ConversationContext,
    Participant,
    ParticipantActivity,
    TopicChange,
)
from src.domain.models.enums import MeetingType
from src.domain.models.intervention import InterventionRecord
from src.domain.models.message import ProcessedMessage

log = structlog.get_logger(__name__)

DEFAULT_TOPIC = "General Discussion"
MOMENTUM_WINDOW_MINUTES = 5
SENTIMENT_WEIGHT = 0.3
# Engagement level counts activity within this window as recent.
ENGAGEMENT_ACTIVITY_MINUTES = 30


class ConversationContextTracker:
    """Maintains a ConversationContext as messages and interventions arrive."""

    def __init__(
        self,
        session_id: str,
        participants: Optional[Sequence[Participant]] = None,
        meeting_type: MeetingType = MeetingType.GENERAL_DISCUSSION,
        agenda: Optional[Sequence[AgendaItem]] = None,
        config: Optional[ContextConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or intervention_config.context
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        initial_topic = agenda[0].title if agenda else DEFAULT_TOPIC
        self.context = ConversationContext(
            session_id=session_id,
            participants=list(participants or []),
            current_topic=initial_topic,
            agenda=list(agenda) if agenda else None,
            start_time=self.clock(),
            meeting_type=meeting_type,
        )
        self.topic_history: List[TopicChange] = []
        self.momentum = 0.0
        self.last_topic_change: datetime = self.context.start_time
        self.activity: Dict[str, ParticipantActivity] = {
            p.id: ParticipantActivity(participant_id=p.id)
            for p in self.context.participants
        }

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_message(self, message: ProcessedMessage) -> None:
        history = self.context.message_history
        history.append(message)
        overflow = len(history) - self.config.max_history_size
        if overflow > 0:
            del history[:overflow]

        self._update_participant_activity(message)
        self._detect_topic_change(message)
        self.momentum = self._calculate_momentum()

    def add_intervention(self, record: InterventionRecord) -> None:
        """
        Raises:
            InterventionHistoryError: If record is older than the newest one
        """
        self.context.append_intervention(record)

    def update_current_topic(self, new_topic: str, confidence: float = 1.0) -> None:
        """Set the topic manually, e.g. when the agenda advances."""
        if new_topic != self.context.current_topic:
            self._record_topic_change(new_topic, confidence, "manual", self.clock())

    def _record_topic_change(
        self, new_topic: str, confidence: float, trigger_id: str, at: datetime
    ) -> None:
        change = TopicChange(
            timestamp=at,
            previous_topic=self.context.current_topic,
            new_topic=new_topic,
            confidence=confidence,
            trigger_message_id=trigger_id,
        )
        self.topic_history.append(change)
        self.context.current_topic = new_topic
        self.last_topic_change = at
        log.info(
            "topic_changed",
            session_id=self.context.session_id,
            previous_topic=change.previous_topic,
            new_topic=new_topic,
            confidence=confidence,
            trigger=trigger_id,
        )

    def _detect_topic_change(self, message: ProcessedMessage) -> None:
        dominant = message.dominant_topic()
        if dominant is None:
            return
        if (
            dominant.confidence > self.config.topic_change_threshold
            and dominant.category != self.context.current_topic
        ):
            self._record_topic_change(
                dominant.category, dominant.confidence, message.id, message.timestamp
            )

    def _update_participant_activity(self, message: ProcessedMessage) -> None:
        activity = self.activity.get(message.user_id)
        if activity is None:
            return

        count = activity.message_count + 1
        average_response = activity.average_response_time_seconds
        if activity.last_activity is not None:
            since_last = (message.timestamp - activity.last_activity).total_seconds()
            average_response = (average_response * (count - 1) + since_last) / count

        sentiment = (
            activity.sentiment_trend * (1 - SENTIMENT_WEIGHT)
            + message.sentiment.overall * SENTIMENT_WEIGHT
        )
        updated = activity.model_copy(
            update={
                "message_count": count,
                "last_activity": message.timestamp,
                "average_response_time_seconds": average_response,
                "sentiment_trend": max(-1.0, min(1.0, sentiment)),
            }
        )
        self.activity[message.user_id] = updated

        participant = self.context.get_participant(message.user_id)
        if participant is not None:
            participant.engagement_level = self._engagement_level(updated)

    def _engagement_level(self, activity: ParticipantActivity) -> float:
        now = self.clock()
        recent_score = 0.0
        if activity.last_activity is not None:
            idle = (now - activity.last_activity).total_seconds()
            recent_score = max(0.0, 1 - idle / (ENGAGEMENT_ACTIVITY_MINUTES * 60))

        elapsed_minutes = (now - self.context.start_time).total_seconds() / 60
        per_minute = activity.message_count / max(1.0, elapsed_minutes)
        frequency_score = min(1.0, per_minute / 2)
        sentiment_score = (activity.sentiment_trend + 1) / 2

        level = recent_score * 0.4 + frequency_score * 0.3 + sentiment_score * 0.3
        return max(0.0, min(1.0, level))

    def _calculate_momentum(self) -> float:
        recent = self.get_messages_in_time_window(MOMENTUM_WINDOW_MINUTES)
        if not recent:
            return 0.0

        frequency_score = min(1.0, (len(recent) / MOMENTUM_WINDOW_MINUTES) / 3)
        average_sentiment = sum(m.sentiment.overall for m in recent) / len(recent)
        sentiment_score = (average_sentiment + 1) / 2
        speakers = len({m.user_id for m in recent})
        diversity_score = min(1.0, speakers / max(1, len(self.context.participants)))
        return (frequency_score + sentiment_score + diversity_score) / 3

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_recent_messages(self, count: int = 10) -> List[ProcessedMessage]:
        if count <= 0:
            return []
        return list(self.context.message_history[-count:])

    def get_messages_in_time_window(self, minutes: float) -> List[ProcessedMessage]:
        cutoff = self.clock() - timedelta(minutes=minutes)
        return [m for m in self.context.message_history if m.timestamp >= cutoff]

    def get_participant_activity(self, participant_id: str) -> Optional[ParticipantActivity]:
        return self.activity.get(participant_id)

    def is_conversation_idle(self, minutes: float) -> bool:
        """True when no message arrived in the last ``minutes``."""
        if not self.context.message_history:
            return True
        last = self.context.message_history[-1].timestamp
        return last < self.clock() - timedelta(minutes=minutes)

    def get_topic_history(self) -> List[TopicChange]:
        return list(self.topic_history)

    def get_conversation_stats(self) -> Dict[str, Any]:
        total = len(self.context.message_history)
        duration = (self.clock() - self.context.start_time).total_seconds() / 60
        return {
            "total_messages": total,
            "duration_minutes": duration,
            "messages_per_minute": total / max(duration, 1.0),
            "participant_count": len(self.context.participants),
            "topic_changes": len(self.topic_history),
            "interventions": len(self.context.intervention_history),
            "momentum": self.momentum,
        }
