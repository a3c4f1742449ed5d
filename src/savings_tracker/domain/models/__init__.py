"""Domain models package."""

from savings_tracker.domain.models.enums import PeriodStatus, SnapshotKind, EventSource
from savings_tracker.domain.models.catalog import Asset, Goal
from savings_tracker.domain.models.ledger import (
    BalanceEvent,
    AllocationTarget,
    AllocationSnapshot,
)
from savings_tracker.domain.models.period import (
    TrackedPair,
    TrackingPeriod,
    PersistedContribution,
    PersistedEvent,
)

__all__ = [
    "PeriodStatus",
    "SnapshotKind",
    "EventSource",
    "Asset",
    "Goal",
    "BalanceEvent",
    "AllocationTarget",
    "AllocationSnapshot",
    "TrackedPair",
    "TrackingPeriod",
    "PersistedContribution",
    "PersistedEvent",
]
