"""Tracking period repository protocol."""

from typing import Protocol, Optional, Sequence

from savings_tracker.domain.models import (
    AllocationSnapshot,
    PeriodStatus,
    PersistedContribution,
    PersistedEvent,
    TrackingPeriod,
)


class PeriodRepository(Protocol):
    """Interface for tracking periods and their persisted contributions."""

    def create(self, period: TrackingPeriod) -> TrackingPeriod:
        """Persist a new (draft) period."""
        ...

    def get_by_id(self, period_id: str) -> Optional[TrackingPeriod]:
        """Retrieve period by ID."""
        ...

    def get_by_label(self, label: str) -> Optional[TrackingPeriod]:
        """Retrieve period by label (YYYY-MM)."""
        ...

    def list_periods(self, status: Optional[PeriodStatus] = None) -> list[TrackingPeriod]:
        """List periods, newest label first."""
        ...

    def save_started(
        self,
        period: TrackingPeriod,
        baseline_snapshots: list[AllocationSnapshot],
    ) -> TrackingPeriod:
        """Persist the draft -> executing transition and its baseline, atomically."""
        ...

    def save_closed(
        self,
        period: TrackingPeriod,
        contributions: list[PersistedContribution],
        events: Sequence[PersistedEvent] = (),
    ) -> TrackingPeriod:
        """Persist the executing -> closed transition, its contributions and its event feed, atomically."""
        ...

    def list_contributions(self, period_id: str) -> list[PersistedContribution]:
        """Read the persisted contributions of a period."""
        ...

    def list_events(self, period_id: str) -> list[PersistedEvent]:
        """Read the frozen event feed of a closed period."""
        ...
