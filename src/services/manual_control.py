"""
Manual activity-level control.

Each user can switch the assistant between SILENT, QUIET, NORMAL and ACTIVE
with an explicit command. The level gates every positive decision made for
that user and shifts their intervention-frequency tier:

    SILENT  -> never intervene; frequency MINIMAL
    QUIET   -> base decision AND a 30% gate; frequency one tier down
    NORMAL  -> base decision unchanged
    ACTIVE  -> base decision OR a 30% gate; frequency one tier up

State is keyed by user id in an injected keyed store. A user may sit in one
session at a time but the state is global, so every read-modify-write for a
user holds that user's lock.
"""

import random
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol

import structlog

from src.core.config import ManualControlConfig, intervention_config
from src.domain.models.activity import ActivityLevelChange
from src.domain.models.conversation import UserPreferences
from src.domain.models.enums import ActivityLevel, InterventionFrequency
from src.persistence.repositories.keyed_store import InMemoryKeyedStore
from src.services.protocols import IKeyedStore

log = structlog.get_logger(__name__)

DEFAULT_ACTIVITY_LEVEL = ActivityLevel.NORMAL

# Matched as lowercase substrings, in this order; first hit wins.
ACTIVITY_COMMAND_PATTERNS: List[tuple[ActivityLevel, List[str]]] = [
    (ActivityLevel.QUIET, ["be quiet", "stay quiet", "less active", "tone it down"]),
    (
        ActivityLevel.SILENT,
        ["be silent", "stop talking", "shut up", "no more interruptions"],
    ),
    (ActivityLevel.ACTIVE, ["be more active", "speak up", "more input", "be helpful"]),
    (
        ActivityLevel.NORMAL,
        ["normal mode", "regular activity", "default behavior", "reset activity"],
    ),
]

_FREQUENCY_TIERS = list(InterventionFrequency)


class RandomSource(Protocol):
    def random(self) -> float: ...


def match_activity_command(text: str) -> Optional[ActivityLevel]:
    """
    Map an activity-control phrase in text to its target level.

    Returns:
        Target ActivityLevel, or None when text holds no command
    """
    content = text.lower()
    for level, patterns in ACTIVITY_COMMAND_PATTERNS:
        if any(pattern in content for pattern in patterns):
            return level
    return None


class ManualControlManager:
    """Per-user activity level, gate and bounded audit history."""

    def __init__(
        self,
        store: Optional[IKeyedStore] = None,
        rng: Optional[RandomSource] = None,
        config: Optional[ManualControlConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            store: Keyed store for levels and history (in-memory if None)
            rng: Random source for the QUIET/ACTIVE gates
            config: Gate probability and history limits
            clock: Returns the current UTC time
        """
        self.store = store if store is not None else InMemoryKeyedStore()
        self.rng = rng or random.Random()
        self.config = config or intervention_config.manual_control
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            if user_id not in self._locks:
                self._locks[user_id] = threading.Lock()
            return self._locks[user_id]

    @staticmethod
    def _level_key(user_id: str) -> str:
        return f"activity:{user_id}"

    @staticmethod
    def _history_key(user_id: str) -> str:
        return f"activity_history:{user_id}"

    def set_activity_level(
        self, user_id: str, level: ActivityLevel, reason: str = "Manual control"
    ) -> ActivityLevelChange:
        """Switch a user's level and append the change to their audit log."""
        with self._lock_for(user_id):
            previous = self.store.get(self._level_key(user_id), DEFAULT_ACTIVITY_LEVEL)
            change = ActivityLevelChange(
                user_id=user_id,
                previous_level=previous,
                new_level=level,
                timestamp=self.clock(),
                reason=reason,
            )
            self.store.set(self._level_key(user_id), level)
            self.store.append(
                self._history_key(user_id),
                change,
                max_length=self.config.history_limit,
            )

        log.info(
            "activity_level_changed",
            user_id=user_id,
            previous_level=previous.value,
            new_level=level.value,
            reason=reason,
        )
        return change

    def get_activity_level(self, user_id: str) -> ActivityLevel:
        return self.store.get(self._level_key(user_id), DEFAULT_ACTIVITY_LEVEL)

    def get_activity_history(self, user_id: str) -> List[ActivityLevelChange]:
        return list(self.store.get(self._history_key(user_id), []))

    def should_allow_intervention(self, user_id: str, base_decision: bool) -> bool:
        """
        Apply the user's activity level to a base decision.

        SILENT is absolute and never consults the random source.
        """
        level = self.get_activity_level(user_id)
        gate = self.config.gate_probability

        if level == ActivityLevel.SILENT:
            return False
        if level == ActivityLevel.QUIET:
            return base_decision and self.rng.random() > 1 - gate
        if level == ActivityLevel.ACTIVE:
            return base_decision or self.rng.random() < gate
        return base_decision

    def adjust_intervention_frequency(
        self, user_id: str, preferences: UserPreferences
    ) -> InterventionFrequency:
        """Shift the preferred frequency one tier by activity level, saturating."""
        level = self.get_activity_level(user_id)
        base = preferences.intervention_frequency

        if level == ActivityLevel.SILENT:
            return InterventionFrequency.MINIMAL

        index = _FREQUENCY_TIERS.index(base)
        if level == ActivityLevel.QUIET:
            return _FREQUENCY_TIERS[max(0, index - 1)]
        if level == ActivityLevel.ACTIVE:
            return _FREQUENCY_TIERS[min(len(_FREQUENCY_TIERS) - 1, index + 1)]
        return base

    def apply_command(self, user_id: str, text: str) -> Optional[ActivityLevelChange]:
        """Set the level named by an activity command in text, if any."""
        level = match_activity_command(text)
        if level is None:
            return None
        return self.set_activity_level(user_id, level, reason=f"Command: {text.strip()}")

    def reset_activity_level(self, user_id: str) -> ActivityLevelChange:
        return self.set_activity_level(user_id, ActivityLevel.NORMAL, "Reset to normal")

    def get_users_with_modified_activity(self) -> Dict[str, ActivityLevel]:
        """Users whose level is anything other than NORMAL."""
        prefix = self._level_key("")
        modified = {}
        for key in self.store.keys(prefix):
            level = self.store.get(key)
            if level != ActivityLevel.NORMAL:
                modified[key[len(prefix) :]] = level
        return modified

    def has_recent_activity_change(
        self, user_id: str, within_minutes: Optional[float] = None
    ) -> bool:
        if within_minutes is None:
            within_minutes = self.config.recent_change_minutes
        history = self.get_activity_history(user_id)
        if not history:
            return False
        elapsed = self.clock() - history[-1].timestamp
        return elapsed <= timedelta(minutes=within_minutes)
