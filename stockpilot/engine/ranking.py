"""Task ordering for stockpilot.

Open tasks sort by priority rank, then by due time, then most recently
updated first. This produces a deterministic ordering for every task view.
"""

from datetime import datetime
from typing import List
from stockpilot.models.task import Task, TaskStatus, TaskPriority


PRIORITY_RANK = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.NORMAL: 2,
}


def priority_rank(priority) -> int:
    """Get sort rank for a priority (lower = more urgent).

    Accepts a TaskPriority or its string value.
    """
    try:
        return PRIORITY_RANK[TaskPriority(priority)]
    except ValueError:
        return 9


def _task_sort_key(task: Task) -> tuple:
    return (
        priority_rank(task.priority),
        task.due_at.timestamp(),
        -task.updated_at.timestamp(),
    )


def stack_rank(tasks: List[Task]) -> List[Task]:
    """Stack-rank a full task set: open tasks before done ones, then by task order.

    Args:
        tasks: Tasks to rank

    Returns:
        New list in ranked order
    """
    return sorted(
        tasks,
        key=lambda task: (0 if task.status == TaskStatus.OPEN else 1,) + _task_sort_key(task),
    )


def open_tasks(tasks: List[Task], now: datetime) -> List[Task]:
    """Open tasks that are not snoozed into the future, in task order."""
    return sorted((t for t in tasks if t.is_actionable(now)), key=_task_sort_key)


def snoozed_tasks(tasks: List[Task], now: datetime) -> List[Task]:
    """Open tasks snoozed into the future, in task order."""
    return sorted((t for t in tasks if t.is_snoozed(now)), key=_task_sort_key)


def completed_tasks(tasks: List[Task]) -> List[Task]:
    """Done tasks, most recently completed first."""
    done = [t for t in tasks if t.status == TaskStatus.DONE]
    return sorted(done, key=lambda t: (t.completed_at or t.updated_at), reverse=True)
