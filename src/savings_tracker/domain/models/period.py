"""Tracking period and its crystallized contributions."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.domain.models.enums import EventSource, PeriodStatus


@dataclass(frozen=True)
class TrackedPair:
    """A (goal, asset) pair followed during a tracking period."""

    goal_id: str
    asset_id: str


@dataclass
class TrackingPeriod:
    """
    One planning period (usually a calendar month).

    `started_at` is set exactly once (draft -> executing) and `completed_at`
    exactly once (executing -> closed). Closed periods are immutable.
    """

    period_id: str
    label: str
    status: PeriodStatus = PeriodStatus.DRAFT
    tracked_pairs: list[TrackedPair] = field(default_factory=list)
    created_at: Optional[datetime] = field(default=None)
    started_at: Optional[datetime] = field(default=None)
    completed_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = PeriodStatus(self.status)

    @property
    def goal_ids(self) -> list[str]:
        """Distinct tracked goal ids, in first-seen order."""
        return list(dict.fromkeys(p.goal_id for p in self.tracked_pairs))

    @property
    def asset_ids(self) -> list[str]:
        """Distinct tracked asset ids, in first-seen order."""
        return list(dict.fromkeys(p.asset_id for p in self.tracked_pairs))

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.EXECUTING


@dataclass(frozen=True)
class PersistedContribution:
    """
    Immutable historical contribution written only when a period closes.

    One row per (goal, asset). `amount` is in goal currency when `converted`
    is True, otherwise it stays in the asset currency (no fabricated rate).
    """

    contribution_id: str
    period_id: str
    goal_id: str
    asset_id: str
    timestamp: datetime
    asset_amount: Decimal
    asset_currency: str
    amount: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    rate_timestamp: Optional[datetime] = None
    converted: bool = True


@dataclass(frozen=True)
class PersistedEvent:
    """
    One contribution event of a closed period, frozen at close time.

    `position` keeps the derived feed order (timestamp, then breakpoint
    order) so the feed reads back exactly as it was derived.
    """

    period_id: str
    position: int
    timestamp: datetime
    source: EventSource
    goal_id: str
    asset_id: str
    asset_currency: str
    asset_delta: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.source, str):
            object.__setattr__(self, "source", EventSource(self.source))
