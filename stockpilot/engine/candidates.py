"""Candidate task generation for stockpilot.

Each rule is an independent guard over the signal snapshot and emits zero or
more candidate tasks. Building candidates is pure: the same (signals, now)
always produce the same list, and task ids only depend on the calendar day
and the rule id, so re-running a cycle on the same day reproduces the same ids.
"""

import logging
import math
import re
from datetime import datetime
from typing import List

from stockpilot.models.signals import Signals, ZoneAssignment
from stockpilot.models.task import Task, TaskAction, TaskPriority, TaskCategory
from stockpilot.models.task_factory import create_task, day_key_for
from stockpilot.models.constants import (
    UNASSIGNED_ZONE_KEY,
    URGENT_REPLENISHMENT_MIN_COUNT,
    COUNT_PACE_CRITICAL_HIT_RATE,
    STALE_COUNT_MIN_THRESHOLD,
    STALE_COUNT_ITEM_DIVISOR,
    ZONE_CRITICAL_MIN_STALE,
    MAX_ZONE_TASKS,
    ZONE_ESTIMATE_MIN_MINUTES,
    ZONE_ESTIMATE_MAX_MINUTES,
    ZONE_FIRST_DUE_HOUR,
    ZONE_LAST_DUE_HOUR,
    DATA_HYGIENE_MIN_GAPS,
    DATA_HYGIENE_ITEM_DIVISOR,
    LEDGER_PENDING_BACKLOG,
    LOW_CONFIDENCE_MIN_COUNT,
    LOW_CONFIDENCE_ITEM_DIVISOR,
    SHRINK_WATCH_MIN_RISK,
    STOCK_RISK_MIN_COUNT,
    STOCK_RISK_ITEM_DIVISOR,
)

logger = logging.getLogger(__name__)

# Rule identifiers
RULE_AUTO_DRAFT_PO = "auto-draft-po"
RULE_URGENT_REPLENISHMENT = "urgent-replenishment"
RULE_COUNT_PACE_RECOVERY = "count-pace-recovery"
RULE_STALE_COUNT_RECOVERY = "stale-count-recovery"
RULE_STALE_COUNT_ZONE_PREFIX = "stale-count-zone-"
RULE_DATA_HYGIENE_SWEEP = "data-hygiene-sweep"
RULE_LEDGER_RECONNECT = "offline-ledger-reconnect"
RULE_CONFIDENCE_RECOVERY = "confidence-recovery"
RULE_SHRINK_WATCH = "shrink-watch"
RULE_MANAGER_KPI_CHECK = "manager-kpi-check"
RULE_STAFF_GUIDED_REFRESH = "staff-guided-refresh"

_NON_TOKEN_RUN = re.compile(r"-+")


def build_candidates(signals: Signals, now: datetime) -> List[Task]:
    """Build candidate tasks for a signal snapshot.

    An empty workspace (item_count == 0) never produces candidates.

    Args:
        signals: Signal snapshot for the cycle
        now: Cycle time (drives ids, created_at and due times)

    Returns:
        Candidate tasks in rule order
    """
    if signals.item_count <= 0:
        return []

    day_key = day_key_for(now)
    output: List[Task] = []
    output.extend(_urgent_replenishment(signals, now, day_key))
    output.extend(_count_pace_recovery(signals, now, day_key))
    output.extend(_stale_count_recovery(signals, now, day_key))
    output.extend(_data_hygiene_sweep(signals, now, day_key))
    output.extend(_sync_backlog(signals, now, day_key))
    output.extend(_confidence_recovery(signals, now, day_key))
    output.extend(_shrink_watch(signals, now, day_key))
    output.extend(_role_daily_task(signals, now, day_key))

    logger.debug(f"Built {len(output)} candidate tasks for {day_key}")
    return output


def preferred_pace_recovery_action(signals: Signals) -> TaskAction:
    """Resolve where pace-recovery work should start.

    Replenishment wins when stock risk is elevated; otherwise a zone mission.
    """
    stock_risk_floor = max(STOCK_RISK_MIN_COUNT, signals.item_count // STOCK_RISK_ITEM_DIVISOR)
    elevated_stock_risk = (
        signals.urgent_replenishment_count >= URGENT_REPLENISHMENT_MIN_COUNT
        or signals.stockout_risk_count >= stock_risk_floor
    )
    if elevated_stock_risk:
        return TaskAction.OPEN_REPLENISHMENT
    return TaskAction.OPEN_ZONE_MISSION


def stale_count_threshold(signals: Signals) -> int:
    """Stale items needed before a count recovery is proposed."""
    return max(STALE_COUNT_MIN_THRESHOLD, signals.item_count // STALE_COUNT_ITEM_DIVISOR)


def normalized_rule_token(raw_value: str) -> str:
    """Turn a zone key into a rule id token (lowercase alphanumerics joined by '-')."""
    mapped = "".join(ch if ch.isalnum() else "-" for ch in raw_value.lower())
    collapsed = _NON_TOKEN_RUN.sub("-", mapped).strip("-")
    return collapsed or "zone"


def prioritized_zones(zones: List[ZoneAssignment]) -> List[ZoneAssignment]:
    """Zones with stale items, most stale first, then by label."""
    stale = [zone for zone in zones if zone.stale_item_count > 0]
    return sorted(stale, key=lambda zone: (-zone.stale_item_count, zone.zone_label.casefold()))


def percent_string(value: float) -> str:
    if not math.isfinite(value):
        return "-"
    return f"{max(0.0, value) * 100:.0f}%"


def _urgent_replenishment(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    if signals.urgent_replenishment_count < URGENT_REPLENISHMENT_MIN_COUNT:
        return []

    can_create_draft = (
        signals.has_elevated_role
        and signals.auto_draft_candidate_count > 0
        and signals.auto_draft_suggested_units > 0
    )
    if can_create_draft:
        return [
            create_task(
                rule_id=RULE_AUTO_DRAFT_PO,
                now=now,
                day_key=day_key,
                title="Auto: Generate draft PO",
                detail=(
                    f"{signals.auto_draft_candidate_count} SKU(s) need {signals.auto_draft_suggested_units} units. "
                    "Create a one-tap draft PO now."
                ),
                action=TaskAction.CREATE_DRAFT_PO,
                priority=TaskPriority.CRITICAL,
                category=TaskCategory.REPLENISHMENT,
                estimate_minutes=3,
                due_hour=9,
            )
        ]

    return [
        create_task(
            rule_id=RULE_URGENT_REPLENISHMENT,
            now=now,
            day_key=day_key,
            title="Auto: Build replenishment draft",
            detail=(
                f"{signals.urgent_replenishment_count} SKU(s) are at urgent stockout risk. "
                "Prioritize a draft order before next receiving window."
            ),
            action=TaskAction.OPEN_REPLENISHMENT,
            priority=TaskPriority.CRITICAL,
            category=TaskCategory.REPLENISHMENT,
            estimate_minutes=8,
            due_hour=10,
        )
    ]


def _count_pace_recovery(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    if not signals.count_pace_lagging:
        return []

    action = preferred_pace_recovery_action(signals)
    if action == TaskAction.OPEN_REPLENISHMENT:
        action_label = "replenishment queue"
        category = TaskCategory.REPLENISHMENT
    else:
        action_label = "zone mission"
        category = TaskCategory.COUNTING

    priority = (
        TaskPriority.CRITICAL
        if signals.count_target_hit_rate < COUNT_PACE_CRITICAL_HIT_RATE
        else TaskPriority.HIGH
    )
    return [
        create_task(
            rule_id=RULE_COUNT_PACE_RECOVERY,
            now=now,
            day_key=day_key,
            title="Auto: Recover count pace",
            detail=(
                f"Target hit rate is {percent_string(signals.count_target_hit_rate)} across "
                f"{signals.count_target_tracked_sessions} tracked sessions. "
                f"Open {action_label} now to recover execution speed."
            ),
            action=action,
            priority=priority,
            category=category,
            estimate_minutes=6,
            due_hour=10,
        )
    ]


def _stale_count_recovery(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    threshold = stale_count_threshold(signals)
    if signals.stale_item_count < threshold:
        return []

    zones = prioritized_zones(signals.stale_zone_assignments)
    if not zones:
        return [
            create_task(
                rule_id=RULE_STALE_COUNT_RECOVERY,
                now=now,
                day_key=day_key,
                title="Auto: Run cycle count mission",
                detail=(
                    f"{signals.stale_item_count} item(s) are stale. "
                    "Run a focused zone mission to cut shrink risk."
                ),
                action=TaskAction.OPEN_ZONE_MISSION,
                priority=TaskPriority.HIGH,
                category=TaskCategory.COUNTING,
                estimate_minutes=10,
                due_hour=12,
            )
        ]

    critical_floor = max(ZONE_CRITICAL_MIN_STALE, threshold)
    output: List[Task] = []
    for index, zone in enumerate(zones[:MAX_ZONE_TASKS]):
        is_critical = index == 0 or zone.stale_item_count >= critical_floor
        estimate = min(ZONE_ESTIMATE_MAX_MINUTES, max(ZONE_ESTIMATE_MIN_MINUTES, zone.stale_item_count * 2))
        assigned_zone = UNASSIGNED_ZONE_KEY if zone.zone_key == UNASSIGNED_ZONE_KEY else zone.zone_label
        output.append(
            create_task(
                rule_id=f"{RULE_STALE_COUNT_ZONE_PREFIX}{normalized_rule_token(zone.zone_key)}",
                now=now,
                day_key=day_key,
                title=f"Auto: Count {zone.zone_label}",
                detail=(
                    f"{zone.stale_item_count} stale item(s) assigned to {zone.zone_label}. "
                    "Run Zone Mission on this zone first."
                ),
                action=TaskAction.OPEN_ZONE_MISSION,
                priority=TaskPriority.CRITICAL if is_critical else TaskPriority.HIGH,
                category=TaskCategory.COUNTING,
                estimate_minutes=estimate,
                due_hour=min(ZONE_LAST_DUE_HOUR, ZONE_FIRST_DUE_HOUR + index),
                assigned_zone=assigned_zone,
            )
        )
    return output


def _data_hygiene_sweep(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    hygiene_load = (
        signals.missing_location_count
        + signals.missing_demand_input_count
        + signals.missing_barcode_count
    )
    if hygiene_load < max(DATA_HYGIENE_MIN_GAPS, signals.item_count // DATA_HYGIENE_ITEM_DIVISOR):
        return []
    return [
        create_task(
            rule_id=RULE_DATA_HYGIENE_SWEEP,
            now=now,
            day_key=day_key,
            title="Auto: Fix data quality blockers",
            detail=(
                f"{hygiene_load} data gaps are slowing counts and reorder accuracy. "
                "Use the brief to clear highest-impact gaps first."
            ),
            action=TaskAction.OPEN_DAILY_BRIEF,
            priority=TaskPriority.HIGH,
            category=TaskCategory.DATA_QUALITY,
            estimate_minutes=7,
            due_hour=14,
        )
    ]


def _sync_backlog(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    has_failures = signals.failed_ledger_event_count > 0
    if not has_failures and signals.pending_ledger_event_count < LEDGER_PENDING_BACKLOG:
        return []
    return [
        create_task(
            rule_id=RULE_LEDGER_RECONNECT,
            now=now,
            day_key=day_key,
            title="Auto: Clear sync backlog",
            detail=(
                f"{signals.pending_ledger_event_count} ledger event(s) are unsynced "
                f"({signals.failed_ledger_event_count} failed). Reconnect integrations and run auto sync."
            ),
            action=TaskAction.OPEN_INTEGRATION_HUB,
            priority=TaskPriority.CRITICAL if has_failures else TaskPriority.HIGH,
            category=TaskCategory.INTEGRATIONS,
            estimate_minutes=6,
            due_hour=11,
        )
    ]


def _confidence_recovery(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    floor = max(LOW_CONFIDENCE_MIN_COUNT, signals.item_count // LOW_CONFIDENCE_ITEM_DIVISOR)
    if signals.low_confidence_item_count < floor:
        return []
    return [
        create_task(
            rule_id=RULE_CONFIDENCE_RECOVERY,
            now=now,
            day_key=day_key,
            title="Auto: Recover count confidence",
            detail=(
                f"{signals.low_confidence_item_count} SKU(s) have weak confidence. "
                "Use Trust Center to target high-risk items and fix root causes."
            ),
            action=TaskAction.OPEN_TRUST_CENTER,
            priority=TaskPriority.HIGH,
            category=TaskCategory.COUNTING,
            estimate_minutes=8,
            due_hour=13,
        )
    ]


def _shrink_watch(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    if signals.stockout_risk_count < SHRINK_WATCH_MIN_RISK:
        return []
    return [
        create_task(
            rule_id=RULE_SHRINK_WATCH,
            now=now,
            day_key=day_key,
            title="Auto: Investigate shrink risk",
            detail=(
                f"Risk signals are elevated across {signals.stockout_risk_count} item(s). "
                "Review exception feed and close top causes."
            ),
            action=TaskAction.OPEN_EXCEPTION_FEED,
            priority=TaskPriority.HIGH,
            category=TaskCategory.SHRINK,
            estimate_minutes=9,
            due_hour=16,
        )
    ]


def _role_daily_task(signals: Signals, now: datetime, day_key: str) -> List[Task]:
    if signals.has_elevated_role:
        return [
            create_task(
                rule_id=RULE_MANAGER_KPI_CHECK,
                now=now,
                day_key=day_key,
                title="Auto: Manager KPI review",
                detail="Run a KPI review to confirm risk, dead stock, and coverage posture before end of day.",
                action=TaskAction.OPEN_KPI_DASHBOARD,
                priority=TaskPriority.NORMAL,
                category=TaskCategory.PLANNING,
                estimate_minutes=5,
                due_hour=18,
            )
        ]
    return [
        create_task(
            rule_id=RULE_STAFF_GUIDED_REFRESH,
            now=now,
            day_key=day_key,
            title="Auto: Skill-up refresh",
            detail="Run a quick guided help refresh to keep count quality high during fast shifts.",
            action=TaskAction.OPEN_GUIDED_HELP,
            priority=TaskPriority.NORMAL,
            category=TaskCategory.COUNTING,
            estimate_minutes=4,
            due_hour=17,
        )
    ]
