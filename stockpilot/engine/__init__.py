"""Automation rule engine for stockpilot."""

from stockpilot.engine.candidates import build_candidates, preferred_pace_recovery_action
from stockpilot.engine.reconciler import reconcile
from stockpilot.engine.ranking import stack_rank, open_tasks, snoozed_tasks, completed_tasks
from stockpilot.engine.reminders import build_reminder_plan, ReminderScheduler, ReminderSyncJob
from stockpilot.engine.proactive import ProactiveRouter, RouteMailbox

__all__ = [
    "build_candidates",
    "preferred_pace_recovery_action",
    "reconcile",
    "stack_rank",
    "open_tasks",
    "snoozed_tasks",
    "completed_tasks",
    "build_reminder_plan",
    "ReminderScheduler",
    "ReminderSyncJob",
    "ProactiveRouter",
    "RouteMailbox",
]
