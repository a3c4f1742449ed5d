"""Domain layer - pure business models with no external dependencies."""

from savings_tracker.domain.models import (
    Asset,
    Goal,
    BalanceEvent,
    AllocationTarget,
    AllocationSnapshot,
    TrackedPair,
    TrackingPeriod,
    PersistedContribution,
    PeriodStatus,
    SnapshotKind,
    EventSource,
)

__all__ = [
    "Asset",
    "Goal",
    "BalanceEvent",
    "AllocationTarget",
    "AllocationSnapshot",
    "TrackedPair",
    "TrackingPeriod",
    "PersistedContribution",
    "PeriodStatus",
    "SnapshotKind",
    "EventSource",
]
