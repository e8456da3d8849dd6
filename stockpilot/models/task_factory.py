"""Task creation factory for stockpilot.

This module centralizes task construction so every rule derives ids and due
times the same way.
"""

from datetime import datetime
from typing import Optional

from stockpilot.models.task import Task, TaskStatus, TaskAction, TaskPriority, TaskCategory
from stockpilot.models.constants import DAY_KEY_FORMAT


def day_key_for(now: datetime) -> str:
    """Calendar day key used as the id prefix (e.g. '20250109')."""
    return now.strftime(DAY_KEY_FORMAT)


def task_id_for(day_key: str, rule_id: str) -> str:
    """Deterministic task id for a rule on a given day."""
    return f"{day_key}.{rule_id}"


def due_time(now: datetime, hour: int) -> datetime:
    """Top of `hour` on the same calendar day as `now` (hour clamped to 0-23)."""
    return now.replace(hour=min(max(0, hour), 23), minute=0, second=0, microsecond=0)


def create_task(
    rule_id: str,
    now: datetime,
    title: str,
    detail: str,
    action: TaskAction,
    priority: TaskPriority,
    category: TaskCategory,
    estimate_minutes: int,
    due_hour: int,
    assigned_zone: Optional[str] = None,
    day_key: Optional[str] = None,
) -> Task:
    """Create a new open task for a rule.

    Args:
        rule_id: Generating rule identifier (also the id suffix)
        now: Generation time; drives created_at, updated_at, the day key and due date
        title: Task title
        detail: Task detail text
        action: Target action
        priority: Task priority
        category: Task category
        estimate_minutes: Work estimate in minutes
        due_hour: Hour of day the task is due
        assigned_zone: Optional zone label
        day_key: Override for the day key (defaults to the day of `now`)

    Returns:
        Open Task with no snooze or completion stamp
    """
    key = day_key or day_key_for(now)
    return Task(
        id=task_id_for(key, rule_id),
        rule_id=rule_id,
        created_at=now,
        updated_at=now,
        title=title,
        detail=detail,
        action=action,
        priority=priority,
        category=category,
        estimate_minutes=estimate_minutes,
        due_at=due_time(now, due_hour),
        assigned_zone=assigned_zone,
        status=TaskStatus.OPEN,
        snoozed_until=None,
        completed_at=None,
    )
