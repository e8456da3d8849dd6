"""Data models for stockpilot."""

from stockpilot.models.task import Task, TaskStatus, TaskPriority, TaskCategory, TaskAction
from stockpilot.models.signals import Signals, ZoneAssignment, WorkspaceRole
from stockpilot.models.workspace_state import WorkspaceAutomationState, ReminderWindow
from stockpilot.models.route import NotificationRoute

__all__ = [
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskCategory",
    "TaskAction",
    "Signals",
    "ZoneAssignment",
    "WorkspaceRole",
    "WorkspaceAutomationState",
    "ReminderWindow",
    "NotificationRoute",
]
