"""Pytest fixtures and configuration for stockpilot tests."""

import threading
import pytest
from datetime import datetime, timedelta
from typing import Dict, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from stockpilot.database.database import Base
from stockpilot.database import models  # noqa: F401
from stockpilot.database.repository import WorkspaceStateRepository
from stockpilot.engine.store import AutomationStore
from stockpilot.integrations.notifications import NotificationRequest, NotificationService


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Thursday morning, before the default shift brief
CLOCK_START = datetime(2025, 1, 9, 8, 0, 0)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotificationService(NotificationService):
    """Notification service double that records every call."""

    def __init__(self, authorized: bool = True):
        self.authorized = authorized
        self.fail_schedule = False
        self.authorization_requests = 0
        self.batches = 0
        self.pending: Dict[str, NotificationRequest] = {}
        self.cancelled: List[str] = []
        self._lock = threading.Lock()

    def request_authorization(self) -> bool:
        with self._lock:
            self.authorization_requests += 1
            return self.authorized

    def enumerate_pending(self) -> List[str]:
        with self._lock:
            self.batches += 1
            return list(self.pending.keys())

    def cancel(self, identifiers: List[str]) -> None:
        with self._lock:
            for identifier in identifiers:
                self.cancelled.append(identifier)
                self.pending.pop(identifier, None)

    def schedule(self, request: NotificationRequest) -> None:
        if self.fail_schedule:
            raise RuntimeError("scheduler unavailable")
        with self._lock:
            self.pending[request.identifier] = request


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def state_repository(db_session: Session):
    """Create a WorkspaceStateRepository instance for testing."""
    return WorkspaceStateRepository(db_session)


@pytest.fixture
def clock():
    return FakeClock(CLOCK_START)


@pytest.fixture
def notification_service():
    return RecordingNotificationService()


@pytest.fixture
def store(state_repository, notification_service, clock):
    """AutomationStore wired to the test database, recording service, and fake clock."""
    automation_store = AutomationStore(
        repository=state_repository,
        notification_service=notification_service,
        clock=clock,
    )
    try:
        yield automation_store
    finally:
        automation_store.close()


@pytest.fixture
def sample_signals_base():
    """Base signal data for building test snapshots.

    Returns a dict for a healthy 20-item staff workspace; override fields as needed.
    Only the staff guided refresh fires for these values.
    """
    return {
        "role": "staff",
        "item_count": 20,
        "stale_item_count": 0,
        "stale_zone_assignments": [],
        "stockout_risk_count": 0,
        "urgent_replenishment_count": 0,
        "auto_draft_candidate_count": 0,
        "auto_draft_suggested_units": 0,
        "missing_location_count": 0,
        "missing_demand_input_count": 0,
        "missing_barcode_count": 0,
        "pending_ledger_event_count": 0,
        "failed_ledger_event_count": 0,
        "low_confidence_item_count": 0,
        "count_target_tracked_sessions": 0,
        "count_target_hit_rate": 0.0,
    }


@pytest.fixture
def test_client(store: AutomationStore):
    """Create a FastAPI test client with the automation store dependency overridden."""
    from stockpilot.api.app import app, get_automation_store

    app.dependency_overrides[get_automation_store] = lambda: store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
