"""Notification route model for stockpilot.

A route tells the UI layer where to navigate, either because a delivered
reminder was opened or because the proactive router detected a condition.
"""

import logging
import uuid
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, Field

from stockpilot.models.task import TaskAction

logger = logging.getLogger(__name__)

# Payload keys shared with the notification service
PAYLOAD_ACTION = "action"
PAYLOAD_TASK_ID = "taskID"
PAYLOAD_WORKSPACE_KEY = "workspaceKey"
PAYLOAD_SUMMARY = "summary"

_TRUE_STRINGS = {"1", "true", "yes", "y", "t"}


class NotificationRoute(BaseModel):
    """One-shot navigation instruction for the UI layer."""

    action: TaskAction = Field(..., description="Target action")
    workspace_key: Optional[str] = Field(None, description="Workspace the route belongs to")
    task_id: Optional[str] = Field(None, description="Task the route points at")
    is_summary: bool = Field(False, description="Whether the route came from the shift brief")
    token: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique route token")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to a notification payload (optional keys omitted when unset)."""
        payload: Dict[str, Any] = {
            PAYLOAD_ACTION: TaskAction(self.action).value,
            PAYLOAD_SUMMARY: self.is_summary,
        }
        if self.workspace_key is not None:
            payload[PAYLOAD_WORKSPACE_KEY] = self.workspace_key
        if self.task_id is not None:
            payload[PAYLOAD_TASK_ID] = self.task_id
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Optional["NotificationRoute"]:
        """Parse a notification payload.

        Returns None when the action is missing or unknown. The summary flag
        accepts bool, number, or string values.
        """
        raw_action = payload.get(PAYLOAD_ACTION)
        if not isinstance(raw_action, str):
            return None
        try:
            action = TaskAction(raw_action)
        except ValueError:
            logger.debug(f"Ignoring notification payload with unknown action {raw_action!r}")
            return None

        workspace_key = payload.get(PAYLOAD_WORKSPACE_KEY)
        task_id = payload.get(PAYLOAD_TASK_ID)
        return cls(
            action=action,
            workspace_key=workspace_key if isinstance(workspace_key, str) else None,
            task_id=task_id if isinstance(task_id, str) else None,
            is_summary=_coerce_summary(payload.get(PAYLOAD_SUMMARY)),
        )


def _coerce_summary(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False
