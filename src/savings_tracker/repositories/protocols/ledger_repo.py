"""Ledger repository protocol (balance events and allocation history)."""

from datetime import datetime
from typing import Protocol, Optional

from savings_tracker.domain.models import (
    AllocationSnapshot,
    AllocationTarget,
    BalanceEvent,
)


class LedgerRepository(Protocol):
    """
    Interface for the append-only ledger.

    All list methods return entries in ledger order (timestamp, then write
    order). Balance events and snapshots are never updated in place.
    """

    # Balance events
    def append_balance_event(self, event: BalanceEvent) -> BalanceEvent:
        """Append a balance-changing event."""
        ...

    def record_balance_change(
        self,
        event: BalanceEvent,
        upserts: list[AllocationTarget],
        removed_goal_ids: list[str],
        snapshots: list[AllocationSnapshot],
    ) -> BalanceEvent:
        """Append a balance event and its target changes in a single transaction."""
        ...

    def list_balance_events(
        self,
        asset_id: str,
        until: Optional[datetime] = None,
    ) -> list[BalanceEvent]:
        """List an asset's events, optionally only those with timestamp <= until."""
        ...

    # Live allocation targets
    def list_allocation_targets(self, asset_id: str) -> list[AllocationTarget]:
        """List the live targets of an asset."""
        ...

    def get_allocation_target(self, asset_id: str, goal_id: str) -> Optional[AllocationTarget]:
        """Get the live target of one (asset, goal) pair."""
        ...

    def list_asset_ids_for_goal(self, goal_id: str) -> list[str]:
        """Assets that fund (or have funded) a goal."""
        ...

    def apply_allocation_changes(
        self,
        asset_id: str,
        upserts: list[AllocationTarget],
        removed_goal_ids: list[str],
        snapshots: list[AllocationSnapshot],
    ) -> list[AllocationSnapshot]:
        """Write target changes and their snapshots in a single transaction."""
        ...

    # Allocation snapshots
    def append_allocation_snapshot(self, snapshot: AllocationSnapshot) -> AllocationSnapshot:
        """Append one allocation snapshot."""
        ...

    def list_allocation_snapshots(self, goal_id: str, asset_id: str) -> list[AllocationSnapshot]:
        """List the snapshots of one (goal, asset) pair."""
        ...

    def list_snapshots_for_asset(self, asset_id: str) -> list[AllocationSnapshot]:
        """List the snapshots of every goal funded by an asset."""
        ...

    def has_snapshot(self, goal_id: str, asset_id: str, until: datetime) -> bool:
        """True if the pair has any snapshot with timestamp <= until."""
        ...
