"""Signal snapshot model for stockpilot.

A `Signals` value is produced by the analytics collaborator once per cycle and
is never mutated or re-queried by the engine.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field

from stockpilot.models.constants import COUNT_PACE_MIN_TRACKED_SESSIONS, COUNT_PACE_TARGET_HIT_RATE


class WorkspaceRole(str, Enum):
    """Role of the operator the cycle runs for."""
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"

    @property
    def is_elevated(self) -> bool:
        return self in (WorkspaceRole.OWNER, WorkspaceRole.MANAGER)


class ZoneAssignment(BaseModel):
    """Stale item count for one storage zone."""

    zone_key: str = Field(..., description="Stable zone key")
    zone_label: str = Field(..., description="Display label of the zone")
    stale_item_count: int = Field(0, ge=0, description="Stale items assigned to the zone")

    class Config:
        """Pydantic configuration."""
        frozen = True


class Signals(BaseModel):
    """Read-only snapshot of workspace health."""

    role: WorkspaceRole = Field(WorkspaceRole.STAFF, description="Role of the current operator")
    item_count: int = Field(0, ge=0, description="Total items in the workspace")
    stale_item_count: int = Field(0, ge=0, description="Items overdue for a count")
    stale_zone_assignments: List[ZoneAssignment] = Field(
        default_factory=list,
        description="Per-zone breakdown of stale items (empty when unavailable)",
    )
    stockout_risk_count: int = Field(0, ge=0, description="Items at stockout risk")
    urgent_replenishment_count: int = Field(0, ge=0, description="Items needing urgent replenishment")
    auto_draft_candidate_count: int = Field(0, ge=0, description="SKUs eligible for an auto draft PO")
    auto_draft_suggested_units: int = Field(0, ge=0, description="Units suggested across auto draft candidates")
    missing_location_count: int = Field(0, ge=0, description="Items without a location")
    missing_demand_input_count: int = Field(0, ge=0, description="Items without demand planning inputs")
    missing_barcode_count: int = Field(0, ge=0, description="Items without a barcode")
    pending_ledger_event_count: int = Field(0, ge=0, description="Ledger events not yet synced")
    failed_ledger_event_count: int = Field(0, ge=0, description="Ledger events that failed to sync")
    low_confidence_item_count: int = Field(0, ge=0, description="Items with weak count confidence")
    count_target_tracked_sessions: int = Field(0, ge=0, description="Count sessions with a pace target")
    count_target_hit_rate: float = Field(0.0, description="Share of tracked sessions that hit target (0-1)")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
        frozen = True

    @property
    def has_elevated_role(self) -> bool:
        return WorkspaceRole(self.role).is_elevated

    @property
    def count_pace_lagging(self) -> bool:
        """Enough tracked sessions exist and the hit rate is below target."""
        return (
            self.count_target_tracked_sessions >= COUNT_PACE_MIN_TRACKED_SESSIONS
            and self.count_target_hit_rate < COUNT_PACE_TARGET_HIT_RATE
        )
