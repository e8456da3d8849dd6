"""Tests for the in-process notification center."""

import pytest
from datetime import datetime, timedelta

from stockpilot.integrations.notifications import LocalNotificationCenter, NotificationRequest


NOW = datetime(2025, 1, 9, 8, 0, 0)


def _request(identifier, minutes):
    return NotificationRequest(
        identifier=identifier,
        trigger_at=NOW + timedelta(minutes=minutes),
        title="Inventory Task Due",
        body="body",
        payload={"action": "open-inbox", "summary": False},
    )


class TestLocalNotificationCenter:
    """Test scheduling, cancellation, and delivery."""

    def test_schedule_replaces_same_identifier(self):
        """Scheduling an identifier again replaces the earlier request."""
        center = LocalNotificationCenter(authorized=True)
        center.schedule(_request("a", 10))
        center.schedule(_request("a", 20))

        assert center.enumerate_pending() == ["a"]
        assert center.pending_requests()[0].trigger_at == NOW + timedelta(minutes=20)

    def test_cancel_ignores_unknown_identifiers(self):
        """Cancelling unknown identifiers is not an error."""
        center = LocalNotificationCenter(authorized=True)
        center.schedule(_request("a", 10))
        center.cancel(["a", "missing"])
        assert center.enumerate_pending() == []

    def test_deliver_due_hands_out_in_trigger_order(self):
        """Due requests are delivered in trigger order and removed."""
        center = LocalNotificationCenter(authorized=True)
        center.schedule(_request("late", 30))
        center.schedule(_request("soon", 5))
        center.schedule(_request("future", 120))

        delivered = center.deliver_due(NOW + timedelta(minutes=30))

        assert [r.identifier for r in delivered] == ["soon", "late"]
        assert center.enumerate_pending() == ["future"]

    def test_unauthorized_center_refuses_to_schedule(self):
        """An unauthorized center refuses to schedule."""
        center = LocalNotificationCenter(authorized=False)
        assert center.request_authorization() is False
        with pytest.raises(PermissionError):
            center.schedule(_request("a", 10))

    def test_authorization_defaults_from_environment(self, monkeypatch):
        """The authorization flag defaults from the environment."""
        monkeypatch.setenv("STOCKPILOT_NOTIFICATIONS_AUTHORIZED", "false")
        assert LocalNotificationCenter().request_authorization() is False
        monkeypatch.delenv("STOCKPILOT_NOTIFICATIONS_AUTHORIZED")
        assert LocalNotificationCenter().request_authorization() is True
