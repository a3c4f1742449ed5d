"""Ledger entries: balance events, live allocation targets and their history."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.domain.models.enums import SnapshotKind


@dataclass(frozen=True)
class BalanceEvent:
    """
    Balance-changing event of one asset (source of truth).

    Signed amount in asset currency; negative = withdrawal.
    Immutable once recorded.
    """

    event_id: str
    asset_id: str
    timestamp: datetime
    amount: Decimal
    note: Optional[str] = None


@dataclass
class AllocationTarget:
    """
    Current earmarked amount from one asset toward one goal (asset currency).

    Represents "now" only; history lives in AllocationSnapshot.
    """

    asset_id: str
    goal_id: str
    amount: Decimal = field(default_factory=lambda: Decimal("0"))
    updated_at: Optional[datetime] = field(default=None)


@dataclass(frozen=True)
class AllocationSnapshot:
    """
    Immutable record of an allocation target value at a point in time.

    `sequence` breaks ties between snapshots of the same pair that share a
    timestamp; the later write wins.
    """

    snapshot_id: str
    goal_id: str
    asset_id: str
    amount: Decimal
    timestamp: datetime
    kind: SnapshotKind = SnapshotKind.CHANGE
    sequence: int = 0
