"""Tests for WorkspaceStateRepository database operations."""

import logging
import pytest
from datetime import datetime

from stockpilot.database.models import AutomationStateBlobDB, STREAM_TASKS, STREAM_REMINDER_WINDOW
from stockpilot.models.task import TaskAction, TaskPriority, TaskCategory, TaskStatus
from stockpilot.models.task_factory import create_task
from stockpilot.models.workspace_state import ReminderWindow, WorkspaceAutomationState


NOW = datetime(2025, 1, 9, 8, 0, 0)


def _task(rule_id):
    return create_task(
        rule_id=rule_id,
        now=NOW,
        title="Auto: Recover count confidence",
        detail="4 SKU(s) have weak confidence.",
        action=TaskAction.OPEN_TRUST_CENTER,
        priority=TaskPriority.HIGH,
        category=TaskCategory.COUNTING,
        estimate_minutes=8,
        due_hour=13,
    )


def _write_raw(db_session, workspace_key, stream, payload):
    db_session.add(AutomationStateBlobDB(workspace_key=workspace_key, stream=stream, payload=payload))
    db_session.commit()


class TestLoadSave:
    """Test state load and save."""

    def test_missing_workspace_loads_defaults(self, state_repository):
        """An unknown workspace loads the default state."""
        state = state_repository.load("nowhere")
        assert state.tasks == []
        assert state.autopilot_enabled is True
        assert state.reminders_enabled is True
        assert state.reminder_window == ReminderWindow.ALL_DAY.value
        assert state.last_run_at is None

    def test_saved_state_loads_back(self, state_repository):
        """A saved state loads back field for field."""
        done = _task("b").model_copy(update={"status": TaskStatus.DONE.value, "completed_at": NOW})
        state = WorkspaceAutomationState(
            tasks=[_task("a"), done],
            autopilot_enabled=False,
            reminders_enabled=False,
            reminder_window=ReminderWindow.MID_SHIFT,
            last_run_at=NOW,
        )
        state_repository.save("north", state)

        loaded = state_repository.load("north")
        assert loaded.tasks == state.tasks
        assert loaded.autopilot_enabled is False
        assert loaded.reminders_enabled is False
        assert loaded.reminder_window == ReminderWindow.MID_SHIFT.value
        assert loaded.last_run_at == NOW

    def test_save_overwrites_previous_blobs(self, state_repository, db_session):
        """Saving twice keeps one row per stream."""
        state_repository.save("all", WorkspaceAutomationState(tasks=[_task("a")]))
        state_repository.save("all", WorkspaceAutomationState(tasks=[]))

        assert state_repository.load("all").tasks == []
        assert db_session.query(AutomationStateBlobDB).filter(
            AutomationStateBlobDB.workspace_key == "all",
            AutomationStateBlobDB.stream == STREAM_TASKS,
        ).count() == 1

    def test_workspaces_do_not_share_state(self, state_repository):
        """State saved for one workspace is invisible to another."""
        state_repository.save("all", WorkspaceAutomationState(tasks=[_task("a")]))
        assert state_repository.load("north").tasks == []

    def test_save_reminders_enabled_only_touches_that_stream(self, state_repository):
        """Saving the reminders flag leaves the other streams untouched."""
        state_repository.save("all", WorkspaceAutomationState(tasks=[_task("a")], autopilot_enabled=False))
        state_repository.save_reminders_enabled("all", False)

        loaded = state_repository.load("all")
        assert loaded.reminders_enabled is False
        assert loaded.autopilot_enabled is False
        assert len(loaded.tasks) == 1

    def test_proactive_cooldown_round_trip(self, state_repository):
        """The proactive cooldown timestamp is stored and read back."""
        assert state_repository.load_proactive_cooldown("all") is None
        state_repository.save_proactive_cooldown("all", NOW)
        assert state_repository.load_proactive_cooldown("all") == NOW


class TestCorruptBlobs:
    """Test that undecodable blobs degrade to defaults."""

    def test_corrupt_tasks_blob_yields_empty_list(self, state_repository, db_session, caplog):
        """A corrupt tasks blob loads as no tasks and logs a warning."""
        state_repository.save("all", WorkspaceAutomationState(autopilot_enabled=False))
        db_session.query(AutomationStateBlobDB).filter(
            AutomationStateBlobDB.stream == STREAM_TASKS
        ).update({"payload": "{not json"})
        db_session.commit()

        with caplog.at_level(logging.WARNING, logger="stockpilot.database.repository"):
            state = state_repository.load("all")

        assert state.tasks == []
        assert state.autopilot_enabled is False
        assert "corrupt tasks blob" in caplog.text

    @pytest.mark.parametrize("payload", ['{"id": 1}', '[{"id": "x"}]', "42"])
    def test_malformed_task_payloads(self, state_repository, db_session, payload):
        """Malformed task payloads load as no tasks."""
        _write_raw(db_session, "all", STREAM_TASKS, payload)
        assert state_repository.load("all").tasks == []

    def test_unknown_reminder_window_falls_back(self, state_repository, db_session):
        """An unknown stored reminder window falls back to all day."""
        _write_raw(db_session, "all", STREAM_REMINDER_WINDOW, '"graveyard-shift"')
        assert state_repository.load("all").reminder_window == ReminderWindow.ALL_DAY.value

    def test_corrupt_cooldown_reads_as_never(self, state_repository, db_session):
        """A corrupt cooldown timestamp reads as never emitted."""
        _write_raw(db_session, "all", "proactive_route", '"yesterday-ish"')
        assert state_repository.load_proactive_cooldown("all") is None
