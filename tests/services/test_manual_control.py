"""Tests for ManualControlManager: activity levels, gates and audit log."""

import random
import threading
from unittest.mock import MagicMock

import pytest

from src.core.config import ManualControlConfig
from src.domain.models.conversation import UserPreferences
from src.domain.models.enums import ActivityLevel, InterventionFrequency
from src.services.manual_control import ManualControlManager, match_activity_command


@pytest.fixture
def manager(clock):
    return ManualControlManager(
        rng=random.Random(42), config=ManualControlConfig(), clock=clock
    )


class TestActivityLevels:
    def test_default_level_is_normal(self, manager):
        assert manager.get_activity_level("u1") == ActivityLevel.NORMAL

    def test_set_level_records_history(self, manager, clock):
        change = manager.set_activity_level("u1", ActivityLevel.QUIET, "Too chatty")

        assert change.previous_level == ActivityLevel.NORMAL
        assert change.new_level == ActivityLevel.QUIET
        assert change.timestamp == clock.now
        assert manager.get_activity_level("u1") == ActivityLevel.QUIET
        assert manager.get_activity_history("u1") == [change]

    def test_history_is_bounded(self, clock):
        manager = ManualControlManager(
            config=ManualControlConfig(history_limit=3), clock=clock
        )
        levels = [ActivityLevel.QUIET, ActivityLevel.ACTIVE, ActivityLevel.SILENT]
        for i in range(5):
            manager.set_activity_level("u1", levels[i % 3])

        history = manager.get_activity_history("u1")
        assert len(history) == 3
        assert history[-1].new_level == ActivityLevel.ACTIVE

    def test_reset_and_modified_users(self, manager):
        manager.set_activity_level("u1", ActivityLevel.SILENT)
        manager.set_activity_level("u2", ActivityLevel.ACTIVE)
        manager.set_activity_level("u3", ActivityLevel.NORMAL)

        assert manager.get_users_with_modified_activity() == {
            "u1": ActivityLevel.SILENT,
            "u2": ActivityLevel.ACTIVE,
        }

        manager.reset_activity_level("u1")
        assert "u1" not in manager.get_users_with_modified_activity()

    def test_recent_activity_change(self, manager, clock):
        assert manager.has_recent_activity_change("u1") is False

        manager.set_activity_level("u1", ActivityLevel.QUIET)
        assert manager.has_recent_activity_change("u1") is True

        clock.advance(minutes=6)
        assert manager.has_recent_activity_change("u1") is False
        assert manager.has_recent_activity_change("u1", within_minutes=10) is True

    def test_concurrent_changes_keep_every_entry(self, manager):
        def flip():
            for _ in range(20):
                manager.set_activity_level("u1", ActivityLevel.QUIET)

        threads = [threading.Thread(target=flip) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(manager.get_activity_history("u1")) == 50


class TestInterventionGate:
    def test_silent_blocks_everything(self, manager):
        manager.rng = MagicMock()
        manager.set_activity_level("u1", ActivityLevel.SILENT)

        assert manager.should_allow_intervention("u1", True) is False
        assert manager.should_allow_intervention("u1", False) is False
        manager.rng.random.assert_not_called()

    def test_normal_passes_base_decision(self, manager):
        assert manager.should_allow_intervention("u1", True) is True
        assert manager.should_allow_intervention("u1", False) is False

    def test_quiet_never_turns_no_into_yes(self, manager):
        manager.set_activity_level("u1", ActivityLevel.QUIET)

        assert not any(manager.should_allow_intervention("u1", False) for _ in range(200))

    def test_quiet_gate_rate(self, manager):
        manager.set_activity_level("u1", ActivityLevel.QUIET)

        allowed = sum(manager.should_allow_intervention("u1", True) for _ in range(1000))

        assert 200 <= allowed <= 400

    def test_active_gate(self, manager):
        manager.set_activity_level("u1", ActivityLevel.ACTIVE)

        assert all(manager.should_allow_intervention("u1", True) for _ in range(100))
        boosted = sum(manager.should_allow_intervention("u1", False) for _ in range(1000))
        assert 200 <= boosted <= 400


class TestFrequencyAdjustment:
    @pytest.mark.parametrize(
        "level,base,expected",
        [
            (ActivityLevel.SILENT, InterventionFrequency.VERY_ACTIVE, InterventionFrequency.MINIMAL),
            (ActivityLevel.QUIET, InterventionFrequency.MODERATE, InterventionFrequency.MINIMAL),
            (ActivityLevel.QUIET, InterventionFrequency.MINIMAL, InterventionFrequency.MINIMAL),
            (ActivityLevel.ACTIVE, InterventionFrequency.ACTIVE, InterventionFrequency.VERY_ACTIVE),
            (ActivityLevel.ACTIVE, InterventionFrequency.VERY_ACTIVE, InterventionFrequency.VERY_ACTIVE),
            (ActivityLevel.NORMAL, InterventionFrequency.ACTIVE, InterventionFrequency.ACTIVE),
        ],
    )
    def test_tier_shift(self, manager, level, base, expected):
        manager.set_activity_level("u1", level)
        preferences = UserPreferences(intervention_frequency=base)

        assert manager.adjust_intervention_frequency("u1", preferences) == expected


class TestCommands:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Please be quiet for a bit", ActivityLevel.QUIET),
            ("OK, STOP TALKING", ActivityLevel.SILENT),
            ("Could you speak up more?", ActivityLevel.ACTIVE),
            ("back to normal mode", ActivityLevel.NORMAL),
            ("What is the burn rate?", None),
        ],
    )
    def test_match_activity_command(self, text, expected):
        assert match_activity_command(text) == expected

    def test_quiet_checked_before_active(self):
        assert match_activity_command("be quiet, not be helpful") == ActivityLevel.QUIET

    def test_apply_command(self, manager):
        change = manager.apply_command("u1", "assistant, be silent please")

        assert change.new_level == ActivityLevel.SILENT
        assert change.reason.startswith("Command:")
        assert manager.apply_command("u1", "nice slide") is None
