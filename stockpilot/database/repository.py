"""Repository layer for workspace automation state.

State is stored as one JSON blob per (workspace, stream). Reads never raise on
bad data: a missing blob or one that fails to decode yields the default for
that stream (the latter is logged as a warning).
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar
from pydantic import ValidationError
from sqlalchemy.orm import Session

from stockpilot.database.models import (
    AutomationStateBlobDB,
    STREAM_TASKS,
    STREAM_AUTOPILOT,
    STREAM_REMINDERS,
    STREAM_REMINDER_WINDOW,
    STREAM_LAST_RUN,
    STREAM_PROACTIVE_ROUTE,
)
from stockpilot.models.task import Task
from stockpilot.models.workspace_state import ReminderWindow, WorkspaceAutomationState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode_tasks(raw: Any) -> List[Task]:
    if not isinstance(raw, list):
        raise ValueError("tasks blob is not a list")
    return [Task.model_validate(item) for item in raw]


def _decode_bool(raw: Any) -> bool:
    if not isinstance(raw, bool):
        raise ValueError("flag blob is not a bool")
    return raw


def _decode_window(raw: Any) -> ReminderWindow:
    return ReminderWindow(raw)


def _decode_datetime(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError("timestamp blob is not a string")
    return datetime.fromisoformat(raw)


def _encode_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class WorkspaceStateRepository:
    """Repository for per-workspace automation state."""

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, workspace_key: str, stream: str) -> Optional[AutomationStateBlobDB]:
        return self.db.query(AutomationStateBlobDB).filter(
            AutomationStateBlobDB.workspace_key == workspace_key,
            AutomationStateBlobDB.stream == stream,
        ).first()

    def _read(self, workspace_key: str, stream: str, decode: Callable[[Any], T], default: T) -> T:
        row = self._get_row(workspace_key, stream)
        if row is None:
            return default
        try:
            return decode(json.loads(row.payload))
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(
                f"Discarding corrupt {stream} blob for workspace {workspace_key}: {type(e).__name__}: {str(e)}"
            )
            return default

    def _upsert(self, workspace_key: str, stream: str, value: Any) -> None:
        payload = json.dumps(value)
        row = self._get_row(workspace_key, stream)
        if row is None:
            self.db.add(AutomationStateBlobDB(workspace_key=workspace_key, stream=stream, payload=payload))
        else:
            row.payload = payload

    def _write(self, workspace_key: str, values: Dict[str, Any]) -> None:
        try:
            for stream, value in values.items():
                self._upsert(workspace_key, stream, value)
            self.db.commit()
            logger.debug(f"Saved {', '.join(values)} for workspace {workspace_key}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save state for workspace {workspace_key}: {type(e).__name__}: {str(e)}")
            raise

    def load(self, workspace_key: str) -> WorkspaceAutomationState:
        """Load a workspace's state, with defaults for anything missing or corrupt."""
        defaults = WorkspaceAutomationState()
        return WorkspaceAutomationState(
            tasks=self._read(workspace_key, STREAM_TASKS, _decode_tasks, []),
            autopilot_enabled=self._read(workspace_key, STREAM_AUTOPILOT, _decode_bool, defaults.autopilot_enabled),
            reminders_enabled=self._read(workspace_key, STREAM_REMINDERS, _decode_bool, defaults.reminders_enabled),
            reminder_window=self._read(
                workspace_key, STREAM_REMINDER_WINDOW, _decode_window, ReminderWindow(defaults.reminder_window)
            ),
            last_run_at=self._read(workspace_key, STREAM_LAST_RUN, _decode_datetime, None),
        )

    def save(self, workspace_key: str, state: WorkspaceAutomationState) -> None:
        """Save every state stream for a workspace in one transaction."""
        self._write(
            workspace_key,
            {
                STREAM_TASKS: [task.model_dump(mode="json") for task in state.tasks],
                STREAM_AUTOPILOT: state.autopilot_enabled,
                STREAM_REMINDERS: state.reminders_enabled,
                STREAM_REMINDER_WINDOW: ReminderWindow(state.reminder_window).value,
                STREAM_LAST_RUN: _encode_datetime(state.last_run_at),
            },
        )

    def save_reminders_enabled(self, workspace_key: str, enabled: bool) -> None:
        self._write(workspace_key, {STREAM_REMINDERS: enabled})

    def load_proactive_cooldown(self, workspace_key: str) -> Optional[datetime]:
        """Last time a proactive route was emitted for the workspace."""
        return self._read(workspace_key, STREAM_PROACTIVE_ROUTE, _decode_datetime, None)

    def save_proactive_cooldown(self, workspace_key: str, emitted_at: datetime) -> None:
        self._write(workspace_key, {STREAM_PROACTIVE_ROUTE: _encode_datetime(emitted_at)})
