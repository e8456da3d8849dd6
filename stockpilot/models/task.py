"""Automation task data model for stockpilot."""

from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status enumeration."""
    OPEN = "open"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priority enumeration."""
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"


class TaskCategory(str, Enum):
    """Task category enumeration."""
    COUNTING = "counting"
    REPLENISHMENT = "replenishment"
    SHRINK = "shrink"
    DATA_QUALITY = "data-quality"
    PLANNING = "planning"
    INTEGRATIONS = "integrations"


class TaskAction(str, Enum):
    """Screen or operation a task (or its reminder) sends the operator to."""
    OPEN_INBOX = "open-inbox"
    OPEN_ZONE_MISSION = "open-zone-mission"
    OPEN_REPLENISHMENT = "open-replenishment"
    CREATE_DRAFT_PO = "create-draft-po"
    OPEN_KPI_DASHBOARD = "open-kpi-dashboard"
    OPEN_EXCEPTION_FEED = "open-exception-feed"
    OPEN_DAILY_BRIEF = "open-daily-brief"
    OPEN_GUIDED_HELP = "open-guided-help"
    OPEN_INTEGRATION_HUB = "open-integration-hub"
    OPEN_TRUST_CENTER = "open-trust-center"

    @property
    def title(self) -> str:
        return _ACTION_TITLES[self]


_ACTION_TITLES = {
    TaskAction.OPEN_INBOX: "Open Automation Inbox",
    TaskAction.OPEN_ZONE_MISSION: "Open Zone Mission",
    TaskAction.OPEN_REPLENISHMENT: "Open Replenishment",
    TaskAction.CREATE_DRAFT_PO: "Create Auto Draft PO",
    TaskAction.OPEN_KPI_DASHBOARD: "Open KPI Dashboard",
    TaskAction.OPEN_EXCEPTION_FEED: "Open Exception Feed",
    TaskAction.OPEN_DAILY_BRIEF: "Open Daily Ops Brief",
    TaskAction.OPEN_GUIDED_HELP: "Open Guided Help",
    TaskAction.OPEN_INTEGRATION_HUB: "Open Integration Hub",
    TaskAction.OPEN_TRUST_CENTER: "Open Trust Center",
}


class Task(BaseModel):
    """Canonical automation task model."""

    id: str = Field(..., description="Deterministic task identifier: '<YYYYMMDD>.<rule_id>'")
    rule_id: str = Field(..., description="Generation rule that produced this task")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Last refresh or mutation timestamp")
    title: str = Field(..., description="Task title")
    detail: str = Field("", description="Task detail text")
    action: TaskAction = Field(..., description="Target action")
    priority: TaskPriority = Field(TaskPriority.NORMAL, description="Task priority")
    category: TaskCategory = Field(..., description="Task category")
    estimate_minutes: int = Field(5, description="Estimated work in minutes")
    due_at: datetime = Field(..., description="Due time (same calendar day as creation)")
    assigned_zone: Optional[str] = Field(None, description="Zone label the task is scoped to")
    status: TaskStatus = Field(TaskStatus.OPEN, description="Task status")
    snoozed_until: Optional[datetime] = Field(None, description="Task is hidden from open views until this time")
    completed_at: Optional[datetime] = Field(None, description="Timestamp of transition to done")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    def is_snoozed(self, now: datetime) -> bool:
        """True while the task is open but snoozed into the future."""
        return self.status == TaskStatus.OPEN and self.snoozed_until is not None and self.snoozed_until > now

    def is_actionable(self, now: datetime) -> bool:
        """True for open tasks that are not snoozed."""
        return self.status == TaskStatus.OPEN and not self.is_snoozed(now)
