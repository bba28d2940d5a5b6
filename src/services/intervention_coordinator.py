"""
Intervention coordinator.

Inbound boundary of the decision core. Owns one ConversationContextTracker
per active session and wires the components together for each new message:

    message -> activity command? -> append -> flow analysis
            -> learned thresholds -> decision engine -> timing
            -> (generator) -> committed intervention record

Evaluations for one session are serialised with a per-session asyncio.Lock;
different sessions proceed concurrently. Session state lives in memory only
and is dropped by end_session.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence, Tuple

import structlog

from src.core.config import InterventionConfig, intervention_config
from src.core.exceptions import SessionAlreadyExistsError, SessionNotFoundError
from src.core.logging import bound_context
from src.domain.models.activity import ActivityLevelChange
from src.domain.models.analysis import FlowAnalysis
from src.domain.models.conversation import (
    AgendaItem,
    ConversationContext,
    Participant,
    UserPreferences,
)
from src.domain.models.enums import ActivityLevel, ConversationOutcome, MeetingType
from src.domain.models.intervention import (
    ConversationState,
    InterventionDecision,
    InterventionRecord,
    TimingStrategy,
)
from src.domain.models.learning import EffectivenessScore, UserReaction
from src.domain.models.message import ProcessedMessage
from src.domain.models.timing import InterventionTiming
from src.persistence.repositories.keyed_store import InMemoryKeyedStore
from src.services.context_analyzer import ContextAnalyzer
from src.services.context_tracker import ConversationContextTracker
from src.services.decision import InterventionDecisionEngine
from src.services.learning_module import LearningModule
from src.services.manual_control import ManualControlManager, RandomSource
from src.services.protocols import IKeyedStore, IResponseGenerator, ITextAnalyzer
from src.services.timing_analyzer import TimingAnalyzer

log = structlog.get_logger(__name__)


def _contains_message(history: Sequence[ProcessedMessage], message_id: str) -> bool:
    return any(m.id == message_id for m in reversed(history))


@dataclass
class MessageOutcome:
    """Result of handling one inbound message."""

    decision: InterventionDecision
    timing: TimingStrategy
    flow_analysis: FlowAnalysis
    timing_assessment: Optional[InterventionTiming] = None
    response: Optional[str] = None
    record: Optional[InterventionRecord] = None
    activity_change: Optional[ActivityLevelChange] = None


class InterventionCoordinator:
    """Session registry and per-message decision pipeline."""

    def __init__(
        self,
        text_analyzer: ITextAnalyzer,
        store: Optional[IKeyedStore] = None,
        config: Optional[InterventionConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[RandomSource] = None,
    ):
        """
        Args:
            text_analyzer: Topic/relevance/drift service used for flow analysis
            store: Shared keyed store for manual-control and learning state
            config: Full intervention config (defaults to YAML config)
            clock: Returns the current UTC time; shared by every component
            rng: Random source for the QUIET/ACTIVE activity gates
        """
        self.config = config or intervention_config
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.store = store if store is not None else InMemoryKeyedStore()

        self.context_analyzer = ContextAnalyzer(text_analyzer, self.config.analyzer)
        self.timing_analyzer = TimingAnalyzer(self.config.timing, clock=self.clock)
        self.manual_control = ManualControlManager(
            store=self.store,
            rng=rng,
            config=self.config.manual_control,
            clock=self.clock,
        )
        self.learning = LearningModule(
            store=self.store, config=self.config.learning, clock=self.clock
        )
        self.engine = InterventionDecisionEngine(
            config=self.config.decision,
            manual_control=self.manual_control,
            clock=self.clock,
        )

        self._sessions: Dict[str, ConversationContextTracker] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_session(
        self,
        session_id: str,
        participants: Optional[Sequence[Participant]] = None,
        meeting_type: MeetingType = MeetingType.GENERAL_DISCUSSION,
        agenda: Optional[Sequence[AgendaItem]] = None,
    ) -> ConversationContext:
        """
        Raises:
            SessionAlreadyExistsError: If session_id is already active
        """
        if session_id in self._sessions:
            raise SessionAlreadyExistsError(f"Session {session_id} is already active")

        tracker = ConversationContextTracker(
            session_id,
            participants=participants,
            meeting_type=meeting_type,
            agenda=agenda,
            config=self.config.context,
            clock=self.clock,
        )
        self._sessions[session_id] = tracker
        self._locks[session_id] = asyncio.Lock()

        log.info(
            "session_started",
            session_id=session_id,
            participants=len(tracker.context.participants),
            meeting_type=meeting_type.value,
            topic=tracker.context.current_topic,
        )
        return tracker.context

    def end_session(self, session_id: str) -> dict:
        """Drop a session and return its final conversation stats."""
        tracker = self.get_tracker(session_id)
        stats = tracker.get_conversation_stats()
        del self._sessions[session_id]
        self._locks.pop(session_id, None)
        log.info("session_ended", session_id=session_id, **stats)
        return stats

    def get_tracker(self, session_id: str) -> ConversationContextTracker:
        """
        Raises:
            SessionNotFoundError: If no active session has this id
        """
        tracker = self._sessions.get(session_id)
        if tracker is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return tracker

    def get_context(self, session_id: str) -> ConversationContext:
        return self.get_tracker(session_id).context

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Decision pipeline
    # ------------------------------------------------------------------

    async def evaluate(
        self, context: ConversationContext, new_message: ProcessedMessage
    ) -> InterventionDecision:
        """
        Decide whether to intervene after new_message.

        The message is appended unless a message with its id is already in
        the history, so repeating a call on an unchanged context at a fixed
        clock returns the same decision.
        """
        async with self._lock_for(context.session_id):
            decision, _ = await self._evaluate(context, new_message)
        return decision

    async def _evaluate(
        self, context: ConversationContext, new_message: ProcessedMessage
    ) -> Tuple[InterventionDecision, FlowAnalysis]:
        if not _contains_message(context.message_history, new_message.id):
            tracker = self._sessions.get(context.session_id)
            if tracker is not None and tracker.context is context:
                tracker.add_message(new_message)
            else:
                context.message_history.append(new_message)

        flow = await self.context_analyzer.analyze_conversation_flow(
            context.message_history
        )

        primary_id = context.primary_participant_id
        primary = context.get_participant(primary_id)
        preferences = primary.preferences if primary else UserPreferences()

        thresholds = None
        if preferences.learning_enabled and self.learning.has_feedback_history(primary_id):
            thresholds = self.learning.update_intervention_thresholds(primary_id)

        decision = self.engine.should_intervene(
            context, flow, preferences, thresholds=thresholds
        )
        return decision, flow

    def compute_timing(
        self, decision: InterventionDecision, conversation_state: ConversationState
    ) -> TimingStrategy:
        return self.engine.calculate_intervention_timing(decision, conversation_state)

    async def handle_message(
        self,
        session_id: str,
        message: ProcessedMessage,
        generator: Optional[IResponseGenerator] = None,
    ) -> MessageOutcome:
        """
        Run the full pipeline for one inbound message.

        An activity-control phrase in the message changes the sender's level
        before the decision is made. When the decision is positive and a
        generator is given, the reply is generated and the intervention is
        committed to the session history.

        Raises:
            SessionNotFoundError: If the session is not active
        """
        tracker = self.get_tracker(session_id)
        with bound_context(session_id=session_id):
            return await self._handle_message(tracker, message, generator)

    async def _handle_message(
        self,
        tracker: ConversationContextTracker,
        message: ProcessedMessage,
        generator: Optional[IResponseGenerator],
    ) -> MessageOutcome:
        context = tracker.context
        session_id = context.session_id

        activity_change = self.manual_control.apply_command(
            message.user_id, message.content
        )

        async with self._lock_for(session_id):
            history = context.message_history
            known = _contains_message(history, message.id)
            previous = history[-1] if history and not known else None
            decision, flow = await self._evaluate(context, message)

            pause = 0.0
            if previous is not None:
                pause = max(0.0, (message.timestamp - previous.timestamp).total_seconds())
            state = ConversationState(
                is_active=True,
                last_message_time=message.timestamp,
                pause_duration_seconds=pause,
                current_speaker=message.user_id,
            )
            timing = self.compute_timing(decision, state)

            outcome = MessageOutcome(
                decision=decision,
                timing=timing,
                flow_analysis=flow,
                timing_assessment=self.timing_analyzer.assess_intervention_timing(
                    context, flow
                ),
                activity_change=activity_change,
            )
            if decision.should_respond and generator is not None:
                outcome.response = await generator.generate(decision, context, flow)
                outcome.record = self.commit_intervention(
                    session_id, decision, message, outcome.response
                )

        log.info(
            "message_handled",
            message_id=message.id,
            should_respond=decision.should_respond,
            type=decision.intervention_type.value,
            reasoning=decision.reasoning,
            delay_seconds=timing.delay_seconds,
        )
        return outcome

    def commit_intervention(
        self,
        session_id: str,
        decision: InterventionDecision,
        trigger: ProcessedMessage,
        response: str,
    ) -> InterventionRecord:
        """
        Record a delivered intervention in the session history.

        Raises:
            SessionNotFoundError: If the session is not active
            InterventionHistoryError: If the clock moved backwards
        """
        tracker = self.get_tracker(session_id)
        record = self.engine.build_intervention_record(
            tracker.context, decision, trigger, response
        )
        tracker.add_intervention(record)
        log.info(
            "intervention_committed",
            session_id=session_id,
            intervention_id=record.id,
            type=record.type.value,
        )
        return record

    # ------------------------------------------------------------------
    # Manual control and learning
    # ------------------------------------------------------------------

    def set_activity_level(
        self, user_id: str, level: ActivityLevel, reason: str = "Manual control"
    ) -> ActivityLevelChange:
        return self.manual_control.set_activity_level(user_id, level, reason)

    def apply_activity_command(
        self, user_id: str, text: str
    ) -> Optional[ActivityLevelChange]:
        return self.manual_control.apply_command(user_id, text)

    def record_intervention_outcome(
        self,
        intervention: InterventionRecord,
        reaction: UserReaction,
        outcome: ConversationOutcome,
    ) -> EffectivenessScore:
        """
        Raises:
            FeedbackAlreadyRecordedError: If the intervention was labelled before
        """
        return self.learning.record_intervention_outcome(intervention, reaction, outcome)
