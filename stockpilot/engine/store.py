"""Workspace-scoped automation store for stockpilot.

`AutomationStore` is the single owner of automation state. Exactly one
workspace is active at a time; every mutation and snapshot read happens under
one re-entrant lock. Reminder syncs are planned under the lock and executed on
a single background worker, so the lock is never held across a call into the
notification service.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from stockpilot.database.repository import WorkspaceStateRepository
from stockpilot.engine import ranking
from stockpilot.engine.candidates import build_candidates
from stockpilot.engine.proactive import ProactiveRouter, RouteMailbox
from stockpilot.engine.reconciler import reconcile
from stockpilot.engine.reminders import ReminderScheduler, ReminderSyncJob, ReminderSyncOutcome
from stockpilot.integrations.notifications import NotificationService
from stockpilot.models.route import NotificationRoute
from stockpilot.models.signals import Signals
from stockpilot.models.task import Task, TaskStatus
from stockpilot.models.workspace_state import ReminderWindow, WorkspaceAutomationState
from stockpilot.models.constants import (
    DEFAULT_WORKSPACE_KEY,
    RUN_CYCLE_MIN_INTERVAL_SECONDS,
    DEFAULT_SNOOZE_HOURS,
    MIN_SNOOZE_HOURS,
)

logger = logging.getLogger(__name__)


def normalize_workspace_key(workspace_key: Optional[str]) -> str:
    """Blank or missing keys map to the default workspace."""
    key = (workspace_key or "").strip()
    return key or DEFAULT_WORKSPACE_KEY


def _copies(tasks: List[Task]) -> List[Task]:
    return [task.model_copy() for task in tasks]


class AutomationStore:
    """Task lifecycle store and workspace scope manager."""

    def __init__(
        self,
        repository: WorkspaceStateRepository,
        notification_service: NotificationService,
        clock: Callable[[], datetime] = datetime.now,
        workspace_key: str = DEFAULT_WORKSPACE_KEY,
    ):
        """Initialize the store and load the starting workspace.

        Args:
            repository: Persistence for workspace state
            notification_service: Local notification collaborator
            clock: Source of the current local time
            workspace_key: Workspace to activate first
        """
        self.repository = repository
        self.notification_service = notification_service
        self.clock = clock
        self.authorization_granted = False

        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stockpilot-reminders")
        self._pending_syncs: List[Future] = []
        self._closed = False

        self._schedulers: Dict[str, ReminderScheduler] = {}
        self._mailboxes: Dict[str, RouteMailbox] = {}

        self._workspace_key = normalize_workspace_key(workspace_key)
        self._state = self._load_state(self._workspace_key)
        self._router = self._load_router(self._workspace_key)

    # Workspace scope

    @property
    def workspace_key(self) -> str:
        with self._lock:
            return self._workspace_key

    def state(self) -> WorkspaceAutomationState:
        """Point-in-time copy of the active workspace state."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def activate_workspace(self, workspace_key: Optional[str]) -> bool:
        """Make a workspace active, persisting the outgoing one.

        In-flight reminder syncs of the outgoing workspace are left to finish.

        Returns:
            True if the active workspace changed
        """
        with self._lock:
            changed = self._activate_locked(workspace_key)
            job = self._plan_sync_locked(force=False) if changed else None
        self._dispatch(job)
        return changed

    def _activate_locked(self, workspace_key: Optional[str]) -> bool:
        key = normalize_workspace_key(workspace_key)
        if key == self._workspace_key:
            return False

        self._persist_locked()
        incoming_state = self._load_state(key)
        incoming_router = self._load_router(key)

        logger.info(f"Switching automation workspace {self._workspace_key} -> {key}")
        self._workspace_key = key
        self._state = incoming_state
        self._router = incoming_router
        return True

    def _load_state(self, workspace_key: str) -> WorkspaceAutomationState:
        try:
            return self.repository.load(workspace_key)
        except Exception as e:
            logger.error(f"Failed to load state for workspace {workspace_key}: {type(e).__name__}: {str(e)}")
            return WorkspaceAutomationState()

    def _load_router(self, workspace_key: str) -> ProactiveRouter:
        try:
            last_emitted_at = self.repository.load_proactive_cooldown(workspace_key)
        except Exception as e:
            logger.error(f"Failed to load route cooldown for {workspace_key}: {type(e).__name__}: {str(e)}")
            last_emitted_at = None
        return ProactiveRouter(workspace_key, last_emitted_at=last_emitted_at)

    def _scheduler_for(self, workspace_key: str) -> ReminderScheduler:
        scheduler = self._schedulers.get(workspace_key)
        if scheduler is None:
            scheduler = ReminderScheduler(workspace_key)
            self._schedulers[workspace_key] = scheduler
        return scheduler

    def _mailbox_for(self, workspace_key: str) -> RouteMailbox:
        mailbox = self._mailboxes.get(workspace_key)
        if mailbox is None:
            mailbox = RouteMailbox()
            self._mailboxes[workspace_key] = mailbox
        return mailbox

    def _persist_locked(self) -> None:
        # The in-memory state stays authoritative if the write fails.
        try:
            self.repository.save(self._workspace_key, self._state)
        except Exception as e:
            logger.error(f"Keeping unsaved state for workspace {self._workspace_key}: {type(e).__name__}: {str(e)}")

    # Settings

    def set_autopilot_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._state.autopilot_enabled = bool(enabled)
            self._persist_locked()

    def set_reminders_enabled(self, enabled: bool) -> None:
        """Enable or disable reminders. Enabling requests authorization on the next sync if needed."""
        with self._lock:
            self._state.reminders_enabled = bool(enabled)
            self._persist_locked()
            job = self._plan_sync_locked(force=True)
        self._dispatch(job)

    def set_reminder_window(self, window: ReminderWindow) -> None:
        with self._lock:
            self._state.reminder_window = ReminderWindow(window).value
            self._persist_locked()
            job = self._plan_sync_locked(force=True)
        self._dispatch(job)

    # Automation cycle

    def run_cycle(
        self,
        signals: Optional[Signals],
        force: bool = False,
        workspace_key: Optional[str] = None,
    ) -> bool:
        """Run one automation cycle.

        Skipped when autopilot is off or a cycle ran within the last
        RUN_CYCLE_MIN_INTERVAL_SECONDS, unless forced. A workspace that has
        never run is always eligible.

        Args:
            signals: Signal snapshot (None means no signals yet)
            force: Bypass the autopilot flag and the rate limit
            workspace_key: Activate this workspace first when given

        Returns:
            True if the cycle ran
        """
        with self._lock:
            if workspace_key is not None:
                self._activate_locked(workspace_key)

            now = self.clock()
            state = self._state
            if not (state.autopilot_enabled or force):
                logger.debug(f"Autopilot disabled for {self._workspace_key}; skipping cycle")
                return False
            if not force and state.last_run_at is not None:
                elapsed = (now - state.last_run_at).total_seconds()
                if elapsed < RUN_CYCLE_MIN_INTERVAL_SECONDS:
                    logger.debug(f"Cycle for {self._workspace_key} ran {elapsed:.0f}s ago; skipping")
                    return False
            if signals is None:
                return False

            candidates = build_candidates(signals, now)
            if not candidates and not state.tasks:
                state.last_run_at = now
                self._persist_locked()
                return True

            state.tasks = reconcile(candidates, state.tasks, now)
            state.last_run_at = now
            self._persist_locked()
            logger.info(
                f"Automation cycle for {self._workspace_key}: {len(candidates)} candidate(s), "
                f"{len(state.tasks)} task(s) tracked"
            )

            route = self._router.evaluate(signals, state.autopilot_enabled, now)
            if route is not None:
                self._mailbox_for(self._workspace_key).put(route)
                try:
                    self.repository.save_proactive_cooldown(self._workspace_key, now)
                except Exception as e:
                    logger.error(f"Failed to save route cooldown: {type(e).__name__}: {str(e)}")

            job = self._plan_sync_locked(force=False)
        self._dispatch(job)
        return True

    # Task lifecycle

    def mark_done(self, task_id: str) -> bool:
        now = self.clock()
        return self._mutate(
            task_id,
            {"status": TaskStatus.DONE.value, "completed_at": now, "snoozed_until": None, "updated_at": now},
        )

    def reopen(self, task_id: str) -> bool:
        now = self.clock()
        return self._mutate(task_id, {"status": TaskStatus.OPEN.value, "completed_at": None, "updated_at": now})

    def snooze(self, task_id: str, hours: int = DEFAULT_SNOOZE_HOURS) -> bool:
        """Hide an open task until now + hours (at least MIN_SNOOZE_HOURS)."""
        now = self.clock()
        hours = max(MIN_SNOOZE_HOURS, hours)
        return self._mutate(
            task_id,
            {
                "status": TaskStatus.OPEN.value,
                "snoozed_until": now + timedelta(hours=hours),
                "updated_at": now,
            },
        )

    def _mutate(self, task_id: str, update: Dict[str, Any]) -> bool:
        with self._lock:
            for index, task in enumerate(self._state.tasks):
                if task.id == task_id:
                    self._state.tasks[index] = task.model_copy(update=update)
                    break
            else:
                logger.debug(f"Ignoring mutation of unknown task {task_id}")
                return False
            self._persist_locked()
            job = self._plan_sync_locked(force=True)
        self._dispatch(job)
        return True

    def reset_workspace_tasks(self) -> None:
        """Drop every task of the active workspace."""
        with self._lock:
            self._state.tasks = []
            self._persist_locked()
            job = self._plan_sync_locked(force=True)
        self._dispatch(job)

    # Views

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            for task in self._state.tasks:
                if task.id == task_id:
                    return task.model_copy()
            return None

    def tasks(self) -> List[Task]:
        with self._lock:
            return _copies(self._state.tasks)

    def open_tasks(self) -> List[Task]:
        with self._lock:
            return _copies(ranking.open_tasks(self._state.tasks, self.clock()))

    def snoozed_tasks(self) -> List[Task]:
        with self._lock:
            return _copies(ranking.snoozed_tasks(self._state.tasks, self.clock()))

    def completed_tasks(self) -> List[Task]:
        with self._lock:
            return _copies(ranking.completed_tasks(self._state.tasks))

    # Routes

    def consume_proactive_route(self, workspace_key: Optional[str] = None) -> Optional[NotificationRoute]:
        """Take the pending route for a workspace (the active one by default)."""
        with self._lock:
            key = normalize_workspace_key(workspace_key) if workspace_key is not None else self._workspace_key
            mailbox = self._mailbox_for(key)
        return mailbox.consume()

    def queue_notification_payload(self, payload: Mapping[str, Any]) -> Optional[NotificationRoute]:
        """Queue the route carried by an opened notification into its workspace mailbox.

        Returns:
            The queued route, or None if the payload carries no known action
        """
        route = NotificationRoute.from_payload(payload)
        if route is None:
            return None
        with self._lock:
            key = normalize_workspace_key(route.workspace_key) if route.workspace_key else self._workspace_key
            mailbox = self._mailbox_for(key)
        mailbox.put(route)
        return route

    # Reminder sync

    def sync_reminders(self, force: bool = False) -> bool:
        """Sync reminders for the active workspace.

        Returns:
            True if a sync job was dispatched
        """
        with self._lock:
            job = self._plan_sync_locked(force=force)
        return self._dispatch(job)

    def _plan_sync_locked(self, force: bool) -> Optional[ReminderSyncJob]:
        scheduler = self._scheduler_for(self._workspace_key)
        return scheduler.plan_sync(
            tasks=list(self._state.tasks),
            window=ReminderWindow(self._state.reminder_window),
            enabled=self._state.reminders_enabled,
            now=self.clock(),
            force=force,
            authorization_granted=self.authorization_granted,
        )

    def _dispatch(self, job: Optional[ReminderSyncJob]) -> bool:
        if job is None:
            return False
        with self._lock:
            if self._closed:
                logger.debug(f"Store closed; dropping reminder sync for {job.workspace_key}")
                return False
            future = self._executor.submit(self._run_sync_job, job)
            self._pending_syncs = [f for f in self._pending_syncs if not f.done()]
            self._pending_syncs.append(future)
        return True

    def _run_sync_job(self, job: ReminderSyncJob) -> ReminderSyncOutcome:
        outcome = job.execute(self.notification_service)
        self._apply_sync_outcome(outcome)
        return outcome

    def _apply_sync_outcome(self, outcome: ReminderSyncOutcome) -> None:
        with self._lock:
            if outcome.authorized:
                self.authorization_granted = True
                return
            if not outcome.denied:
                return

            self.authorization_granted = False
            if outcome.workspace_key == self._workspace_key:
                self._state.reminders_enabled = False
            try:
                self.repository.save_reminders_enabled(outcome.workspace_key, False)
            except Exception as e:
                logger.error(f"Failed to persist disabled reminders: {type(e).__name__}: {str(e)}")

    def wait_for_reminder_sync(self, timeout: Optional[float] = None) -> bool:
        """Block until dispatched reminder syncs finish.

        Returns:
            True if nothing is left pending
        """
        with self._lock:
            pending = list(self._pending_syncs)
        _, not_done = wait(pending, timeout=timeout)
        with self._lock:
            self._pending_syncs = [f for f in self._pending_syncs if not f.done()]
        return not not_done

    def close(self) -> None:
        """Persist the active workspace and stop the reminder worker after it drains."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._persist_locked()
        self._executor.shutdown(wait=True)
