"""View models for derivation and execution-tracking outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.domain.models import (
    AllocationSnapshot,
    BalanceEvent,
    EventSource,
)


@dataclass(frozen=True)
class Historical:
    """Target value taken from an allocation snapshot."""

    value: Decimal

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class LiveFallback:
    """Target value taken from the live allocation (no snapshot yet)."""

    value: Decimal

    @property
    def is_fallback(self) -> bool:
        return True


TargetLookup = Historical | LiveFallback


@dataclass
class AssetLedger:
    """
    Everything the derivation engine needs to know about one asset.

    Events and snapshots must be in ledger order; the engine never reads
    anything else.
    """

    asset_id: str
    currency: str
    events: list[BalanceEvent] = field(default_factory=list)
    snapshots: dict[str, list[AllocationSnapshot]] = field(default_factory=dict)
    live_targets: dict[str, Decimal] = field(default_factory=dict)

    @property
    def goal_ids(self) -> list[str]:
        """Every goal this asset funds now or has funded (sorted for determinism)."""
        return sorted(set(self.snapshots) | set(self.live_targets))


@dataclass(frozen=True)
class ConsistencyWarning:
    """Over-allocation seen during computation (targets exceed balance)."""

    asset_id: str
    timestamp: Optional[datetime]
    balance: Decimal
    total_target: Decimal

    @property
    def message(self) -> str:
        return (
            f"Asset {self.asset_id} over-allocated: targets {self.total_target} "
            f"exceed balance {self.balance}; funding split proportionally"
        )


@dataclass
class FundedPoint:
    """Funded amounts of one asset from `timestamp` until the next breakpoint."""

    timestamp: datetime
    balance: Decimal
    targets: dict[str, Decimal]
    funded: dict[str, Decimal]

    @property
    def total_target(self) -> Decimal:
        return sum(self.targets.values(), Decimal("0"))

    @property
    def total_funded(self) -> Decimal:
        return sum(self.funded.values(), Decimal("0"))

    @property
    def unallocated(self) -> Decimal:
        """Slack attributed to no goal."""
        return max(self.balance - self.total_funded, Decimal("0"))


@dataclass(frozen=True)
class DerivedEvent:
    """Step change of a (goal, asset) funded amount at one breakpoint."""

    timestamp: datetime
    source: EventSource
    asset_id: str
    asset_currency: str
    goal_id: str
    asset_delta: Decimal


@dataclass
class GoalContribution:
    """Interval contribution of one goal, split by contributing asset."""

    goal_id: str
    by_asset: dict[str, Decimal] = field(default_factory=dict)
    asset_currencies: dict[str, str] = field(default_factory=dict)

    @property
    def by_currency(self) -> dict[str, Decimal]:
        """Net delta per asset currency."""
        totals: dict[str, Decimal] = {}
        for asset_id, amount in self.by_asset.items():
            currency = self.asset_currencies[asset_id]
            totals[currency] = totals.get(currency, Decimal("0")) + amount
        return totals


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a currency conversion (rate captured for snapshots)."""

    amount: Decimal
    rate: Decimal
    rate_timestamp: datetime


@dataclass
class GoalTotal:
    """Per-goal total for display; unconverted parts stay in their own currency."""

    goal_id: str
    currency: str
    total: Decimal = field(default_factory=lambda: Decimal("0"))
    unconverted: dict[str, Decimal] = field(default_factory=dict)

    @property
    def fully_converted(self) -> bool:
        return not self.unconverted


@dataclass
class DerivedTotals:
    """Result of a derived-totals query for an open period."""

    period_id: str
    start: datetime
    as_of: datetime
    goals: dict[str, GoalTotal] = field(default_factory=dict)
    warnings: list[ConsistencyWarning] = field(default_factory=list)
    missing_rates: list[str] = field(default_factory=list)
