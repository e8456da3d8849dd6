"""Proactive routing for stockpilot.

When count pace is lagging, the router hands the UI a one-shot route to the
place where recovery work should start, at most once per cooldown window.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

from stockpilot.engine.candidates import RULE_COUNT_PACE_RECOVERY, preferred_pace_recovery_action
from stockpilot.models.route import NotificationRoute
from stockpilot.models.signals import Signals
from stockpilot.models.task_factory import day_key_for, task_id_for
from stockpilot.models.constants import PROACTIVE_ROUTE_COOLDOWN_HOURS

logger = logging.getLogger(__name__)


class RouteMailbox:
    """Single-slot mailbox; a put replaces any unconsumed route."""

    def __init__(self):
        self._route: Optional[NotificationRoute] = None
        self._lock = threading.Lock()

    def put(self, route: NotificationRoute) -> None:
        with self._lock:
            self._route = route

    def consume(self) -> Optional[NotificationRoute]:
        """Atomically return and clear the pending route."""
        with self._lock:
            route, self._route = self._route, None
            return route


class ProactiveRouter:
    """Cooldown-gated route emission for one workspace."""

    def __init__(self, workspace_key: str, last_emitted_at: Optional[datetime] = None):
        self.workspace_key = workspace_key
        self.last_emitted_at = last_emitted_at

    def cooldown_elapsed(self, now: datetime) -> bool:
        if self.last_emitted_at is None:
            return True
        return now - self.last_emitted_at >= timedelta(hours=PROACTIVE_ROUTE_COOLDOWN_HOURS)

    def evaluate(self, signals: Signals, autopilot_enabled: bool, now: datetime) -> Optional[NotificationRoute]:
        """Emit a route when pace is lagging and the cooldown has elapsed.

        Args:
            signals: Signal snapshot for the cycle
            autopilot_enabled: Whether autopilot is on for the workspace
            now: Cycle time

        Returns:
            A fresh route (and stamps the cooldown), or None
        """
        if not autopilot_enabled or not signals.count_pace_lagging:
            return None
        if not self.cooldown_elapsed(now):
            logger.debug(f"Proactive route for {self.workspace_key} still cooling down")
            return None

        self.last_emitted_at = now
        route = NotificationRoute(
            action=preferred_pace_recovery_action(signals),
            workspace_key=self.workspace_key,
            task_id=task_id_for(day_key_for(now), RULE_COUNT_PACE_RECOVERY),
            is_summary=False,
        )
        logger.info(f"Proactive route to {route.action} for workspace {self.workspace_key}")
        return route
