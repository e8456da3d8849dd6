"""Reminder scheduling for stockpilot.

Reminder sync is split into two halves so the store never holds its lock
across a notification-service call:

- `ReminderScheduler.plan_sync` runs under the store lock. It applies the
  debounce, builds the reminder plan from a task snapshot, and returns a
  `ReminderSyncJob` (or None when the sync is debounced).
- `ReminderSyncJob.execute` runs on a background worker and talks to the
  `NotificationService`. It reports back through a `ReminderSyncOutcome`.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import quote

from stockpilot.engine.ranking import open_tasks
from stockpilot.integrations.notifications import NotificationRequest, NotificationService
from stockpilot.models.route import NotificationRoute
from stockpilot.models.task import Task, TaskAction
from stockpilot.models.workspace_state import ReminderWindow
from stockpilot.models.constants import (
    REMINDER_SYNC_DEBOUNCE_SECONDS,
    REMINDER_LOOKAHEAD_HOURS,
    MAX_TASK_REMINDERS,
    REMINDER_IDENTIFIER_NAMESPACE,
)

logger = logging.getLogger(__name__)

TASK_REMINDER_TITLE = "Inventory Task Due"
SUMMARY_TITLE = "Autopilot Shift Brief"
SUMMARY_IDENTIFIER_SUFFIX = "summary"


def _workspace_segment(workspace_key: str) -> str:
    # Dots are percent-encoded so one workspace's prefix never covers another's.
    return quote(workspace_key, safe="").replace(".", "%2E")


def reminder_identifier_prefix(workspace_key: str) -> str:
    """Prefix shared by every notification this engine owns for a workspace."""
    return f"{REMINDER_IDENTIFIER_NAMESPACE}.{_workspace_segment(workspace_key)}."


def task_reminder_identifier(workspace_key: str, task_id: str) -> str:
    return f"{reminder_identifier_prefix(workspace_key)}{task_id}"


def summary_identifier(workspace_key: str) -> str:
    return f"{reminder_identifier_prefix(workspace_key)}{SUMMARY_IDENTIFIER_SUFFIX}"


def next_summary_time(now: datetime, window: ReminderWindow) -> datetime:
    """Next shift brief time: today at the window's summary hour, or tomorrow if passed."""
    candidate = now.replace(hour=ReminderWindow(window).summary_hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def is_reminder_eligible(task: Task, window: ReminderWindow, now: datetime) -> bool:
    """Open, not snoozed, due within the lookahead, and due inside the reminder window."""
    if not task.is_actionable(now):
        return False
    horizon = now + timedelta(hours=REMINDER_LOOKAHEAD_HOURS)
    if not (now < task.due_at <= horizon):
        return False
    return ReminderWindow(window).includes(task.due_at.hour)


def summary_body(open_count: int) -> str:
    if open_count == 1:
        return "1 autopilot task is ready. Start with the highest-priority action."
    return f"{open_count} autopilot tasks are ready. Start with the highest-priority action."


def build_reminder_plan(
    tasks: List[Task],
    window: ReminderWindow,
    workspace_key: str,
    now: datetime,
) -> List[NotificationRequest]:
    """Build the full set of notification requests for a workspace.

    Args:
        tasks: Workspace task set (any status)
        window: Reminder window
        workspace_key: Owning workspace
        now: Current time

    Returns:
        Task reminders (highest priority first, capped) followed by the shift brief
        when any open task exists
    """
    actionable = open_tasks(tasks, now)
    requests: List[NotificationRequest] = []

    eligible = [t for t in actionable if is_reminder_eligible(t, window, now)]
    for task in eligible[:MAX_TASK_REMINDERS]:
        route = NotificationRoute(action=task.action, workspace_key=workspace_key, task_id=task.id)
        requests.append(
            NotificationRequest(
                identifier=task_reminder_identifier(workspace_key, task.id),
                trigger_at=task.due_at.replace(second=0, microsecond=0),
                title=TASK_REMINDER_TITLE,
                body=f"{task.title} • {TaskAction(task.action).title}",
                payload=route.to_payload(),
            )
        )

    if actionable:
        route = NotificationRoute(action=TaskAction.OPEN_INBOX, workspace_key=workspace_key, is_summary=True)
        requests.append(
            NotificationRequest(
                identifier=summary_identifier(workspace_key),
                trigger_at=next_summary_time(now, window),
                title=SUMMARY_TITLE,
                body=summary_body(len(actionable)),
                payload=route.to_payload(),
            )
        )
    return requests


@dataclass
class ReminderSyncOutcome:
    """What a background sync observed."""
    workspace_key: str
    authorized: Optional[bool] = None
    cancelled: int = 0
    scheduled: int = 0
    failed: int = 0

    @property
    def denied(self) -> bool:
        return self.authorized is False


@dataclass
class ReminderSyncJob:
    """Snapshot of one sync, executed off the store lock."""
    workspace_key: str
    enabled: bool
    requests: List[NotificationRequest] = field(default_factory=list)
    request_authorization: bool = False

    def execute(self, service: NotificationService) -> ReminderSyncOutcome:
        """Apply the snapshot to the notification service.

        Owned pending requests are always cancelled first. Service failures are
        logged and counted, never raised; the next sync recomputes everything.
        """
        outcome = ReminderSyncOutcome(workspace_key=self.workspace_key)

        if self.enabled and self.request_authorization:
            try:
                outcome.authorized = bool(service.request_authorization())
            except Exception as e:
                logger.error(f"Notification authorization failed for {self.workspace_key}: {type(e).__name__}: {str(e)}")
                outcome.authorized = False
            if outcome.denied:
                logger.warning(f"Notification authorization denied; disabling reminders for {self.workspace_key}")

        try:
            outcome.cancelled = self._cancel_owned(service)
        except Exception as e:
            logger.error(f"Failed to clear reminders for {self.workspace_key}: {type(e).__name__}: {str(e)}")

        if not self.enabled or outcome.denied:
            return outcome

        for request in self.requests:
            try:
                service.schedule(request)
                outcome.scheduled += 1
            except Exception as e:
                outcome.failed += 1
                logger.error(f"Failed to schedule {request.identifier}: {type(e).__name__}: {str(e)}")

        logger.debug(
            f"Reminder sync for {self.workspace_key}: cancelled={outcome.cancelled} "
            f"scheduled={outcome.scheduled} failed={outcome.failed}"
        )
        return outcome

    def _cancel_owned(self, service: NotificationService) -> int:
        prefix = reminder_identifier_prefix(self.workspace_key)
        owned = [identifier for identifier in service.enumerate_pending() if identifier.startswith(prefix)]
        if owned:
            service.cancel(owned)
        return len(owned)


class ReminderScheduler:
    """Debounced reminder planning for one workspace."""

    def __init__(self, workspace_key: str):
        self.workspace_key = workspace_key
        self.last_sync_at: Optional[datetime] = None

    def should_sync(self, now: datetime, force: bool = False) -> bool:
        if force or self.last_sync_at is None:
            return True
        return (now - self.last_sync_at).total_seconds() >= REMINDER_SYNC_DEBOUNCE_SECONDS

    def plan_sync(
        self,
        tasks: List[Task],
        window: ReminderWindow,
        enabled: bool,
        now: datetime,
        force: bool = False,
        authorization_granted: bool = False,
    ) -> Optional[ReminderSyncJob]:
        """Plan a sync, or return None when debounced.

        A disabled workspace always yields a clearing job regardless of debounce.
        """
        if not enabled:
            return ReminderSyncJob(workspace_key=self.workspace_key, enabled=False)

        if not self.should_sync(now, force):
            logger.debug(f"Reminder sync for {self.workspace_key} debounced")
            return None

        self.last_sync_at = now
        return ReminderSyncJob(
            workspace_key=self.workspace_key,
            enabled=True,
            requests=build_reminder_plan(tasks, window, self.workspace_key, now),
            request_authorization=not authorization_granted,
        )
