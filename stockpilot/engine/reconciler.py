"""Task reconciliation for stockpilot.

Merges freshly built candidates with the persisted task set. Lifecycle fields
(status, snooze, completion) and creation time of an existing task always win
over the candidate; descriptive fields are refreshed from the candidate.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List

from stockpilot.engine.ranking import stack_rank
from stockpilot.models.task import Task, TaskStatus
from stockpilot.models.constants import TASK_RETENTION_DAYS

logger = logging.getLogger(__name__)


def reconcile(candidates: List[Task], existing: List[Task], now: datetime) -> List[Task]:
    """Reconcile candidates against existing tasks.

    Args:
        candidates: Candidate tasks from this cycle (duplicate ids keep the first)
        existing: Persisted tasks for the workspace
        now: Cycle time

    Returns:
        Merged candidates plus retained history, stack-ranked
    """
    existing_by_id: Dict[str, Task] = {}
    for task in existing:
        existing_by_id.setdefault(task.id, task)

    merged: List[Task] = []
    candidate_ids = set()
    for candidate in candidates:
        if candidate.id in candidate_ids:
            logger.debug(f"Dropping duplicate candidate {candidate.id}")
            continue
        candidate_ids.add(candidate.id)

        previous = existing_by_id.get(candidate.id)
        if previous is None:
            merged.append(candidate)
            continue

        merged.append(
            candidate.model_copy(
                update={
                    "created_at": previous.created_at,
                    "updated_at": now,
                    "status": previous.status,
                    "snoozed_until": previous.snoozed_until,
                    "completed_at": previous.completed_at,
                }
            )
        )

    cutoff = now - timedelta(days=TASK_RETENTION_DAYS)
    preserved = [
        task
        for task in existing_by_id.values()
        if task.id not in candidate_ids and is_retained(task, cutoff)
    ]

    dropped = len(existing_by_id) - len(candidate_ids & existing_by_id.keys()) - len(preserved)
    if dropped:
        logger.debug(f"Retention dropped {dropped} task(s) older than {TASK_RETENTION_DAYS} days")

    return stack_rank(merged + preserved)


def is_retained(task: Task, cutoff: datetime) -> bool:
    """Whether a task not regenerated this cycle is still within retention."""
    if task.status == TaskStatus.DONE:
        return (task.completed_at or task.updated_at) >= cutoff
    return task.created_at >= cutoff
