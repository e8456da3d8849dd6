"""Constants for stockpilot.

This module centralizes all magic numbers and default values used by the automation engine.
"""


# Workspaces
DEFAULT_WORKSPACE_KEY = "all"
UNASSIGNED_ZONE_KEY = "__unassigned__"

# Automation cycle
RUN_CYCLE_MIN_INTERVAL_SECONDS = 20
TASK_RETENTION_DAYS = 30
DAY_KEY_FORMAT = "%Y%m%d"

# Candidate rules
URGENT_REPLENISHMENT_MIN_COUNT = 2
COUNT_PACE_MIN_TRACKED_SESSIONS = 2
COUNT_PACE_TARGET_HIT_RATE = 0.6
COUNT_PACE_CRITICAL_HIT_RATE = 0.4
STALE_COUNT_MIN_THRESHOLD = 4
STALE_COUNT_ITEM_DIVISOR = 4
ZONE_CRITICAL_MIN_STALE = 3
MAX_ZONE_TASKS = 3
ZONE_ESTIMATE_MIN_MINUTES = 6
ZONE_ESTIMATE_MAX_MINUTES = 18
ZONE_FIRST_DUE_HOUR = 11
ZONE_LAST_DUE_HOUR = 18
DATA_HYGIENE_MIN_GAPS = 5
DATA_HYGIENE_ITEM_DIVISOR = 3
LEDGER_PENDING_BACKLOG = 20
LOW_CONFIDENCE_MIN_COUNT = 2
LOW_CONFIDENCE_ITEM_DIVISOR = 5
SHRINK_WATCH_MIN_RISK = 2
STOCK_RISK_MIN_COUNT = 2
STOCK_RISK_ITEM_DIVISOR = 6

# Lifecycle
DEFAULT_SNOOZE_HOURS = 3
MIN_SNOOZE_HOURS = 1

# Reminders
REMINDER_SYNC_DEBOUNCE_SECONDS = 12
REMINDER_LOOKAHEAD_HOURS = 18
MAX_TASK_REMINDERS = 20
REMINDER_IDENTIFIER_NAMESPACE = "stockpilot.automation.reminder"

# Proactive routing
PROACTIVE_ROUTE_COOLDOWN_HOURS = 2
