"""
Shared test fixtures.

Deterministic building blocks for the decision core: a settable clock, a
scripted text analyzer, and factories for messages, contexts and
intervention records.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

import pytest

from src.core.config import (
    AnalyzerConfig,
    ContextConfig,
    DecisionConfig,
    InterventionConfig,
    LearningConfig,
    ManualControlConfig,
    TimingConfig,
)
from src.domain.models.analysis import DriftAnalysis
from src.domain.models.conversation import ConversationContext, Participant
from src.domain.models.enums import InterventionType
from src.domain.models.intervention import InterventionRecord
from src.domain.models.message import (
    ChatMessage,
    ProcessedMessage,
    SentimentScore,
    TopicCategory,
)

BASE_TIME = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


class FakeTextAnalyzer:
    """Scripted ITextAnalyzer.

    topic and relevance may be constants or callables of the text, so tests
    can make individual messages on- or off-topic by their content.
    """

    def __init__(
        self,
        topic: Union[str, Callable[[str], str]] = "investment_evaluation",
        relevance: Union[float, Callable[[str], float]] = 0.9,
        drift: Optional[DriftAnalysis] = None,
        text_reply: str = "0.5",
    ):
        self.topic = topic
        self.relevance = relevance
        self.drift = drift or DriftAnalysis()
        self.text_reply = text_reply
        self.calls: List[str] = []

    async def classify_topic(self, text: str) -> str:
        self.calls.append("classify_topic")
        return self.topic(text) if callable(self.topic) else self.topic

    async def score_relevance(self, text: str) -> float:
        self.calls.append("score_relevance")
        return self.relevance(text) if callable(self.relevance) else self.relevance

    async def analyze_drift(
        self, earlier_text: str, recent_text: str, original_topic: str
    ) -> DriftAnalysis:
        self.calls.append("analyze_drift")
        return self.drift

    async def analyze_text(self, text: str, prompt: str) -> str:
        self.calls.append("analyze_text")
        return self.text_reply


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fake_analyzer():
    return FakeTextAnalyzer()


@pytest.fixture
def config():
    """Default config built from code defaults, independent of the YAML file."""
    return InterventionConfig(
        decision=DecisionConfig(),
        analyzer=AnalyzerConfig(),
        timing=TimingConfig(),
        manual_control=ManualControlConfig(),
        learning=LearningConfig(),
        context=ContextConfig(),
    )


@pytest.fixture
def make_message():
    """Factory for ProcessedMessage; timestamps default to 10 s apart."""
    counter = itertools.count(1)

    def _make(
        content: str = "Sounds good to me.",
        user_id: str = "u1",
        at: Optional[datetime] = None,
        topics: Optional[List[tuple]] = None,
        sentiment: float = 0.0,
        message_id: Optional[str] = None,
    ) -> ProcessedMessage:
        n = next(counter)
        return ProcessedMessage(
            original_message=ChatMessage(
                id=message_id or f"m{n}",
                user_id=user_id,
                content=content,
                timestamp=at or BASE_TIME + timedelta(seconds=10 * n),
            ),
            sentiment=SentimentScore(overall=sentiment),
            topic_classification=[
                TopicCategory(category=category, confidence=confidence)
                for category, confidence in (topics or [])
            ],
        )

    return _make


@pytest.fixture
def make_context():
    """Factory for ConversationContext with u1/u2 participants by default."""

    def _make(
        messages: Optional[List[ProcessedMessage]] = None,
        interventions: Optional[List[InterventionRecord]] = None,
        participants: Optional[List[Participant]] = None,
        start_time: datetime = BASE_TIME,
        session_id: str = "s1",
    ) -> ConversationContext:
        if participants is None:
            participants = [Participant(id="u1"), Participant(id="u2")]
        return ConversationContext(
            session_id=session_id,
            participants=participants,
            message_history=list(messages or []),
            intervention_history=list(interventions or []),
            start_time=start_time,
        )

    return _make


@pytest.fixture
def make_record():
    """Factory for InterventionRecord."""
    counter = itertools.count(1)

    def _make(
        at: datetime,
        intervention_type: InterventionType = InterventionType.FACT_CHECK,
        user_id: str = "u1",
        trigger: str = "revenue grew fast",
    ) -> InterventionRecord:
        return InterventionRecord(
            id=f"i{next(counter)}",
            timestamp=at,
            type=intervention_type,
            trigger=trigger,
            conversation_id="s1",
            user_id=user_id,
        )

    return _make
