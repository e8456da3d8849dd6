"""FastAPI web application for stockpilot."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from stockpilot import __version__
from stockpilot.database.database import SessionLocal, init_db
from stockpilot.database.repository import WorkspaceStateRepository
from stockpilot.engine.store import AutomationStore
from stockpilot.integrations.notifications import LocalNotificationCenter
from stockpilot.models.route import NotificationRoute
from stockpilot.models.signals import Signals
from stockpilot.models.task import Task
from stockpilot.models.workspace_state import ReminderWindow
from stockpilot.models.constants import DEFAULT_SNOOZE_HOURS

logger = logging.getLogger(__name__)

_store: Optional[AutomationStore] = None


def get_automation_store() -> AutomationStore:
    """Process-wide automation store (dependency for FastAPI)."""
    global _store
    if _store is None:
        init_db()
        _store = AutomationStore(
            repository=WorkspaceStateRepository(SessionLocal()),
            notification_service=LocalNotificationCenter(),
        )
        logger.info(f"Automation store ready for workspace {_store.workspace_key}")
    return _store


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _store
    if _store is not None:
        _store.close()
        _store.repository.db.close()
        _store = None


# Initialize FastAPI app
app = FastAPI(
    title="stockpilot API",
    description="Turns inventory health signals into a prioritized automation inbox",
    version=__version__,
    lifespan=lifespan,
)


# Request/response models
class WorkspaceResponse(BaseModel):
    """Active workspace settings."""
    workspace_key: str
    autopilot_enabled: bool
    reminders_enabled: bool
    reminder_window: ReminderWindow
    last_run_at: Optional[datetime]
    open_task_count: int


class ActivateWorkspaceRequest(BaseModel):
    """Request to switch the active workspace."""
    workspace_key: str = Field(..., description="Workspace to activate (blank means the default workspace)")


class SettingsUpdate(BaseModel):
    """Partial settings update; unset fields are left alone."""
    autopilot_enabled: Optional[bool] = None
    reminders_enabled: Optional[bool] = None
    reminder_window: Optional[ReminderWindow] = None


class CycleRequest(BaseModel):
    """Request to run an automation cycle."""
    signals: Signals
    force: bool = False
    workspace_key: Optional[str] = None


class CycleResponse(BaseModel):
    """Result of an automation cycle."""
    ran: bool
    workspace_key: str
    open_tasks: List[Task]


class SnoozeRequest(BaseModel):
    """Request to snooze a task."""
    hours: int = Field(DEFAULT_SNOOZE_HOURS, description="Snooze length in hours (values below 1 become 1)")


class RouteResponse(BaseModel):
    """Pending route, if any."""
    route: Optional[NotificationRoute] = None


class NotificationOpenRequest(BaseModel):
    """Payload of an opened notification."""
    payload: Dict[str, Any]


def _workspace_response(store: AutomationStore) -> WorkspaceResponse:
    state = store.state()
    return WorkspaceResponse(
        workspace_key=store.workspace_key,
        autopilot_enabled=state.autopilot_enabled,
        reminders_enabled=state.reminders_enabled,
        reminder_window=state.reminder_window,
        last_run_at=state.last_run_at,
        open_task_count=len(store.open_tasks()),
    )


def _task_or_404(store: AutomationStore, task_id: str) -> Task:
    task = store.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/workspace", response_model=WorkspaceResponse)
def get_workspace(store: AutomationStore = Depends(get_automation_store)):
    return _workspace_response(store)


@app.post("/workspace/activate", response_model=WorkspaceResponse)
def activate_workspace(request: ActivateWorkspaceRequest, store: AutomationStore = Depends(get_automation_store)):
    store.activate_workspace(request.workspace_key)
    return _workspace_response(store)


@app.put("/workspace/settings", response_model=WorkspaceResponse)
def update_settings(update: SettingsUpdate, store: AutomationStore = Depends(get_automation_store)):
    """Update autopilot, reminders, and reminder window settings."""
    if update.autopilot_enabled is not None:
        store.set_autopilot_enabled(update.autopilot_enabled)
    if update.reminders_enabled is not None:
        store.set_reminders_enabled(update.reminders_enabled)
    if update.reminder_window is not None:
        store.set_reminder_window(update.reminder_window)
    return _workspace_response(store)


@app.post("/cycle", response_model=CycleResponse)
def run_cycle(request: CycleRequest, store: AutomationStore = Depends(get_automation_store)):
    """Run an automation cycle for the given signals."""
    ran = store.run_cycle(request.signals, force=request.force, workspace_key=request.workspace_key)
    return CycleResponse(ran=ran, workspace_key=store.workspace_key, open_tasks=store.open_tasks())


@app.get("/tasks/open", response_model=List[Task])
def list_open_tasks(store: AutomationStore = Depends(get_automation_store)):
    return store.open_tasks()


@app.get("/tasks/snoozed", response_model=List[Task])
def list_snoozed_tasks(store: AutomationStore = Depends(get_automation_store)):
    return store.snoozed_tasks()


@app.get("/tasks/completed", response_model=List[Task])
def list_completed_tasks(store: AutomationStore = Depends(get_automation_store)):
    return store.completed_tasks()


@app.post("/tasks/{task_id}/done", response_model=Task)
def mark_task_done(task_id: str, store: AutomationStore = Depends(get_automation_store)):
    if not store.mark_done(task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return _task_or_404(store, task_id)


@app.post("/tasks/{task_id}/reopen", response_model=Task)
def reopen_task(task_id: str, store: AutomationStore = Depends(get_automation_store)):
    if not store.reopen(task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return _task_or_404(store, task_id)


@app.post("/tasks/{task_id}/snooze", response_model=Task)
def snooze_task(
    task_id: str,
    request: Optional[SnoozeRequest] = None,
    store: AutomationStore = Depends(get_automation_store),
):
    hours = request.hours if request is not None else DEFAULT_SNOOZE_HOURS
    if not store.snooze(task_id, hours=hours):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return _task_or_404(store, task_id)


@app.delete("/tasks")
def reset_tasks(store: AutomationStore = Depends(get_automation_store)):
    """Drop every task of the active workspace."""
    store.reset_workspace_tasks()
    return {"workspace_key": store.workspace_key, "task_count": 0}


@app.post("/routes/proactive/consume", response_model=RouteResponse)
def consume_proactive_route(
    workspace_key: Optional[str] = None,
    store: AutomationStore = Depends(get_automation_store),
):
    """Take the pending proactive route (returned at most once)."""
    return RouteResponse(route=store.consume_proactive_route(workspace_key))


@app.post("/notifications/open", response_model=RouteResponse)
def open_notification(request: NotificationOpenRequest, store: AutomationStore = Depends(get_automation_store)):
    """Queue the route carried by an opened notification."""
    route = store.queue_notification_payload(request.payload)
    if route is None:
        raise HTTPException(status_code=400, detail="Notification payload has no known action")
    return RouteResponse(route=route)
