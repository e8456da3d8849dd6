"""Per-workspace automation state for stockpilot."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field

from stockpilot.models.task import Task


class ReminderWindow(str, Enum):
    """Time-of-day band in which task reminders may fire."""
    ALL_DAY = "all-day"
    OPEN_SHIFT = "open-shift"
    MID_SHIFT = "mid-shift"
    CLOSE_SHIFT = "close-shift"

    @property
    def hours(self) -> Tuple[int, int]:
        """Start hour (inclusive) and end hour (exclusive)."""
        return _WINDOW_HOURS[self]

    @property
    def summary_hour(self) -> int:
        """Hour of the daily shift brief for this window."""
        return _WINDOW_SUMMARY_HOURS[self]

    def includes(self, hour: int) -> bool:
        start, end = self.hours
        return start <= hour < end


_WINDOW_HOURS = {
    ReminderWindow.ALL_DAY: (6, 22),
    ReminderWindow.OPEN_SHIFT: (6, 11),
    ReminderWindow.MID_SHIFT: (11, 16),
    ReminderWindow.CLOSE_SHIFT: (16, 22),
}

_WINDOW_SUMMARY_HOURS = {
    ReminderWindow.ALL_DAY: 9,
    ReminderWindow.OPEN_SHIFT: 7,
    ReminderWindow.MID_SHIFT: 12,
    ReminderWindow.CLOSE_SHIFT: 17,
}


class WorkspaceAutomationState(BaseModel):
    """Automation state owned by one workspace key."""

    tasks: List[Task] = Field(default_factory=list, description="Persisted task set")
    autopilot_enabled: bool = Field(True, description="Whether cycles run without force")
    reminders_enabled: bool = Field(True, description="Whether task reminders are scheduled")
    reminder_window: ReminderWindow = Field(ReminderWindow.ALL_DAY, description="Reminder time-of-day band")
    last_run_at: Optional[datetime] = Field(None, description="Timestamp of the last completed cycle")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
