"""Tests for task reconciliation (lifecycle preservation and retention)."""

from datetime import datetime, timedelta

from stockpilot.engine.reconciler import reconcile, is_retained
from stockpilot.models.task import TaskAction, TaskPriority, TaskCategory, TaskStatus
from stockpilot.models.task_factory import create_task


NOW = datetime(2025, 1, 9, 8, 0, 0)


def _task(rule_id, now=NOW, title="Auto: Test", priority=TaskPriority.HIGH, due_hour=12):
    return create_task(
        rule_id=rule_id,
        now=now,
        title=title,
        detail="detail",
        action=TaskAction.OPEN_ZONE_MISSION,
        priority=priority,
        category=TaskCategory.COUNTING,
        estimate_minutes=5,
        due_hour=due_hour,
    )


def _done(task, completed_at):
    return task.model_copy(update={"status": TaskStatus.DONE.value, "completed_at": completed_at})


class TestReconcileMerge:
    """Test merging candidates with existing tasks."""

    def test_new_candidates_pass_through(self):
        """Candidates with no persisted match are kept as generated."""
        candidates = [_task("a"), _task("b")]
        result = reconcile(candidates, [], NOW)
        assert {t.id for t in result} == {"20250109.a", "20250109.b"}
        assert all(t.status == TaskStatus.OPEN.value for t in result)

    def test_done_task_keeps_lifecycle_and_gets_fresh_text(self):
        """A done task keeps its lifecycle fields and takes the new descriptive fields."""
        earlier = NOW - timedelta(hours=2)
        existing = _done(_task("a", now=earlier, title="Old title"), completed_at=earlier + timedelta(minutes=30))
        later = NOW + timedelta(hours=1)
        candidate = _task("a", now=later, title="New title")

        result = reconcile([candidate], [existing], later)

        assert len(result) == 1
        merged = result[0]
        assert merged.title == "New title"
        assert merged.status == TaskStatus.DONE.value
        assert merged.completed_at == existing.completed_at
        assert merged.created_at == existing.created_at
        assert merged.updated_at == later

    def test_snooze_survives_regeneration(self):
        """A snoozed task stays snoozed when its rule fires again."""
        snoozed_until = NOW + timedelta(hours=3)
        existing = _task("a").model_copy(update={"snoozed_until": snoozed_until})
        result = reconcile([_task("a")], [existing], NOW + timedelta(minutes=5))

        assert result[0].snoozed_until == snoozed_until
        assert result[0].status == TaskStatus.OPEN.value

    def test_duplicate_candidate_ids_keep_first(self):
        """The first of two candidates with one id wins."""
        first = _task("a", title="First")
        second = _task("a", title="Second")
        result = reconcile([first, second], [], NOW)

        assert len(result) == 1
        assert result[0].title == "First"

    def test_open_tasks_rank_before_done(self):
        """Reconciled output lists open tasks before done ones."""
        done = _done(_task("done", priority=TaskPriority.CRITICAL), completed_at=NOW)
        open_normal = _task("open", priority=TaskPriority.NORMAL)
        result = reconcile([open_normal], [done], NOW)
        assert [t.rule_id for t in result] == ["open", "done"]


class TestRetention:
    """Test the 30-day retention rule for tasks not regenerated this cycle."""

    def test_completed_31_days_ago_is_dropped_29_kept(self):
        """Completed history past 30 days is dropped and younger history kept."""
        old_day = NOW - timedelta(days=31)
        recent_day = NOW - timedelta(days=29)
        old = _done(_task("old", now=old_day), completed_at=old_day)
        recent = _done(_task("recent", now=recent_day), completed_at=recent_day)

        result = reconcile([_task("fresh")], [old, recent], NOW)

        ids = {t.rule_id for t in result}
        assert "old" not in ids
        assert "recent" in ids
        assert "fresh" in ids

    def test_done_task_uses_completion_time(self):
        """Retention of a done task is measured from completed_at."""
        created = NOW - timedelta(days=40)
        task = _done(_task("a", now=created), completed_at=NOW - timedelta(days=2))
        assert is_retained(task, NOW - timedelta(days=30))

    def test_done_task_without_completion_falls_back_to_updated_at(self):
        """A done task without completed_at is aged by updated_at."""
        created = NOW - timedelta(days=40)
        task = _task("a", now=created).model_copy(update={"status": TaskStatus.DONE.value})
        assert not is_retained(task, NOW - timedelta(days=30))

    def test_stale_open_task_is_dropped(self):
        """An open task created more than 30 days ago is dropped."""
        stale = _task("stale", now=NOW - timedelta(days=31))
        recent = _task("recent", now=NOW - timedelta(days=1))
        result = reconcile([], [stale, recent], NOW)
        assert [t.rule_id for t in result] == ["recent"]

    def test_regenerated_task_survives_regardless_of_age(self):
        """A candidate match is never subject to retention."""
        ancient = _done(_task("a", now=NOW - timedelta(days=60)), completed_at=NOW - timedelta(days=60))
        ancient = ancient.model_copy(update={"id": "20250109.a"})
        result = reconcile([_task("a")], [ancient], NOW)

        assert len(result) == 1
        assert result[0].status == TaskStatus.DONE.value
