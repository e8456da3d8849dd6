"""Local notification integration for stockpilot.

The engine only talks to `NotificationService`. `LocalNotificationCenter` is an
in-process implementation that keeps pending requests in memory and hands them
out once their trigger time has passed.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class NotificationRequest(BaseModel):
    """One-shot, calendar-time-triggered notification."""

    identifier: str = Field(..., description="Unique identifier (engine-owned ones share a workspace prefix)")
    trigger_at: datetime = Field(..., description="Local time the notification fires")
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Route payload handed back when opened")


class NotificationService(ABC):
    """Collaborator that owns delivery of local notifications."""

    @abstractmethod
    def request_authorization(self) -> bool:
        """Ask for permission to deliver notifications. Returns True when granted."""

    @abstractmethod
    def enumerate_pending(self) -> List[str]:
        """Identifiers of all pending (not yet delivered) requests."""

    @abstractmethod
    def cancel(self, identifiers: List[str]) -> None:
        """Remove pending requests by identifier. Unknown identifiers are ignored."""

    @abstractmethod
    def schedule(self, request: NotificationRequest) -> None:
        """Add a pending request, replacing any request with the same identifier."""


class LocalNotificationCenter(NotificationService):
    """In-memory notification center."""

    def __init__(self, authorized: Optional[bool] = None):
        """Initialize the center.

        Args:
            authorized: Whether authorization requests are granted.
                        If None, reads STOCKPILOT_NOTIFICATIONS_AUTHORIZED (defaults to true).
        """
        if authorized is None:
            authorized = os.getenv("STOCKPILOT_NOTIFICATIONS_AUTHORIZED", "True").lower() == "true"
        self.authorized = authorized
        self._pending: Dict[str, NotificationRequest] = {}
        self._lock = threading.Lock()

    def request_authorization(self) -> bool:
        logger.debug(f"Notification authorization {'granted' if self.authorized else 'denied'}")
        return self.authorized

    def enumerate_pending(self) -> List[str]:
        with self._lock:
            return list(self._pending.keys())

    def cancel(self, identifiers: List[str]) -> None:
        with self._lock:
            for identifier in identifiers:
                self._pending.pop(identifier, None)

    def schedule(self, request: NotificationRequest) -> None:
        if not self.authorized:
            raise PermissionError("Notifications are not authorized")
        with self._lock:
            self._pending[request.identifier] = request

    def pending_requests(self) -> List[NotificationRequest]:
        """Pending requests ordered by trigger time."""
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: (r.trigger_at, r.identifier))

    def deliver_due(self, now: datetime) -> List[NotificationRequest]:
        """Remove and return every pending request whose trigger time has passed.

        Args:
            now: Current local time

        Returns:
            Delivered requests ordered by trigger time
        """
        with self._lock:
            due = [r for r in self._pending.values() if r.trigger_at <= now]
            for request in due:
                del self._pending[request.identifier]
        if due:
            logger.info(f"Delivered {len(due)} notification(s)")
        return sorted(due, key=lambda r: (r.trigger_at, r.identifier))
