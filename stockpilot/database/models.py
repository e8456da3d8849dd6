"""SQLAlchemy database models for stockpilot."""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime

from stockpilot.database.database import Base


# Logical streams persisted per workspace
STREAM_TASKS = "tasks"
STREAM_AUTOPILOT = "autopilot"
STREAM_REMINDERS = "reminders"
STREAM_REMINDER_WINDOW = "reminder_window"
STREAM_LAST_RUN = "last_run"
STREAM_PROACTIVE_ROUTE = "proactive_route"


class AutomationStateBlobDB(Base):
    """One JSON blob per (workspace, stream)."""

    __tablename__ = "automation_state_blobs"

    workspace_key = Column(String, primary_key=True)
    stream = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def __repr__(self) -> str:
        return f"<AutomationStateBlobDB {self.workspace_key}/{self.stream}>"
