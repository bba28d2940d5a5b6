"""Chat message domain models.

This module defines the raw chat message delivered by the transport layer
and the immutable annotated wrapper produced by the (external) analysis step.

Core Concepts:
    - ChatMessage: raw message as delivered (id, author, text, timestamp)
    - ProcessedMessage: frozen wrapper adding sentiment, topic labels and
      urgency; appended once to ConversationContext.message_history and
      never mutated afterwards
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.domain.models.enums import UrgencyLevel


class MessageMetadata(BaseModel):
    """Transport-level metadata attached to a chat message."""

    model_config = ConfigDict(frozen=True)

    platform: Optional[str] = None
    thread_id: Optional[str] = None
    reply_to_id: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """Single chat message as delivered by the transport layer."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[MessageMetadata] = None


class Entity(BaseModel):
    """Named entity extracted from a message."""

    model_config = ConfigDict(frozen=True)

    type: str
    value: str
    confidence: float = Field(ge=0.0, le=1.0)
    start_index: int = 0
    end_index: int = 0


class SentimentScore(BaseModel):
    """Sentiment breakdown; overall is on a -1..1 scale."""

    model_config = ConfigDict(frozen=True)

    positive: float = Field(default=0.0, ge=0.0, le=1.0)
    negative: float = Field(default=0.0, ge=0.0, le=1.0)
    neutral: float = Field(default=1.0, ge=0.0, le=1.0)
    overall: float = Field(default=0.0, ge=-1.0, le=1.0)


class TopicCategory(BaseModel):
    """One topic label with its classifier confidence."""

    model_config = ConfigDict(frozen=True)

    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    keywords: List[str] = Field(default_factory=list)


class ProcessedMessage(BaseModel):
    """Immutable chat message plus derived annotations.

    Produced once by the analysis step. The decision core only reads
    these fields; it never re-annotates a message.
    """

    model_config = ConfigDict(frozen=True)

    original_message: ChatMessage
    extracted_entities: List[Entity] = Field(default_factory=list)
    sentiment: SentimentScore = Field(default_factory=SentimentScore)
    topic_classification: List[TopicCategory] = Field(default_factory=list)
    urgency_level: UrgencyLevel = UrgencyLevel.LOW

    @property
    def id(self) -> str:
        return self.original_message.id

    @property
    def user_id(self) -> str:
        return self.original_message.user_id

    @property
    def content(self) -> str:
        return self.original_message.content

    @property
    def timestamp(self) -> datetime:
        return self.original_message.timestamp

    def dominant_topic(self) -> Optional[TopicCategory]:
        """Highest-confidence topic label, or None when unlabelled."""
        if not self.topic_classification:
            return None
        return max(self.topic_classification, key=lambda t: t.confidence)
