"""
Execution period controller.

Drives a tracking period through draft -> executing -> closed. While a
period is executing its totals are derived on demand from the ledger; the
close crystallizes them into PersistedContribution rows exactly once.
"""

import logging
import re
import uuid
from contextlib import ExitStack
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from savings_tracker.config.settings import get_settings
from savings_tracker.core.exceptions import (
    NotFoundError,
    RateUnavailableError,
    StateError,
    ValidationError,
)
from savings_tracker.core.locks import asset_locks, period_locks
from savings_tracker.core.timezone import month_label, now_utc, to_utc
from savings_tracker.domain.models import (
    AllocationSnapshot,
    PeriodStatus,
    PersistedContribution,
    PersistedEvent,
    SnapshotKind,
    TrackedPair,
    TrackingPeriod,
)
from savings_tracker.domain.views import DerivedEvent, DerivedTotals, GoalTotal
from savings_tracker.repositories.protocols import (
    AssetRepository,
    GoalRepository,
    LedgerRepository,
    PeriodRepository,
)
from savings_tracker.services.currency_converter import CurrencyConverter
from savings_tracker.services.derivation_engine import DerivationEngine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LABEL_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class PeriodController:
    """
    Service for the tracking period lifecycle.

    Transitions on one period are serialized. `started_at` and `completed_at`
    are each written exactly once; closed periods are read from the
    contribution rows and event feed persisted at close.
    """

    def __init__(
        self,
        period_repo: PeriodRepository,
        asset_repo: AssetRepository,
        goal_repo: GoalRepository,
        ledger_repo: LedgerRepository,
        converter: CurrencyConverter,
        engine: Optional[DerivationEngine] = None,
        epsilon: Optional[Decimal] = None,
    ):
        self._period_repo = period_repo
        self._asset_repo = asset_repo
        self._goal_repo = goal_repo
        self._ledger_repo = ledger_repo
        self._converter = converter
        self._epsilon = epsilon if epsilon is not None else get_settings().amount_epsilon
        self._engine = engine or DerivationEngine(asset_repo, ledger_repo, epsilon=self._epsilon)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_period(self, period_id: str) -> TrackingPeriod:
        """Get period by ID."""
        period = self._period_repo.get_by_id(period_id)
        if not period:
            raise NotFoundError("Tracking period", period_id)
        return period

    def get_period_by_label(self, label: str) -> TrackingPeriod:
        """Get period by its YYYY-MM label."""
        period = self._period_repo.get_by_label(label)
        if not period:
            raise NotFoundError("Tracking period", label)
        return period

    def list_periods(self, status: Optional[PeriodStatus] = None) -> list[TrackingPeriod]:
        return self._period_repo.list_periods(status=status)

    def get_active_period(self) -> Optional[TrackingPeriod]:
        """The most recent executing period, if any."""
        executing = self._period_repo.list_periods(status=PeriodStatus.EXECUTING)
        return executing[0] if executing else None

    # =========================================================================
    # Transitions
    # =========================================================================

    def create_period(
        self,
        label: Optional[str] = None,
        tracked_pairs: Optional[Iterable[TrackedPair]] = None,
        at: Optional[datetime] = None,
    ) -> TrackingPeriod:
        """
        Create a draft period.

        Args:
            label: Month label (YYYY-MM); defaults to the month of `at`
            tracked_pairs: (goal, asset) pairs to follow; may be set later
            at: Creation time (default now)
        """
        at = to_utc(at) if at else now_utc()
        label = label or month_label(at)
        if not LABEL_PATTERN.match(label):
            raise ValidationError(f"Invalid period label '{label}', expected YYYY-MM")
        if self._period_repo.get_by_label(label):
            raise ValidationError(f"Tracking period '{label}' already exists")

        period = TrackingPeriod(
            period_id=str(uuid.uuid4()),
            label=label,
            status=PeriodStatus.DRAFT,
            tracked_pairs=self._validate_pairs(tracked_pairs or []),
            created_at=at,
        )
        return self._period_repo.create(period)

    def start_tracking(
        self,
        period_id: str,
        tracked_pairs: Optional[Iterable[TrackedPair]] = None,
        at: Optional[datetime] = None,
    ) -> TrackingPeriod:
        """
        Move a draft period to executing.

        Seeds a baseline snapshot (the live target) for every tracked pair
        without history at `at`, so later derivations never read live state
        for this window.
        """
        at = to_utc(at) if at else now_utc()
        with period_locks.hold(period_id):
            period = self.get_period(period_id)
            if period.status != PeriodStatus.DRAFT:
                raise StateError(
                    f"Cannot start tracking period '{period.label}': status is {period.status.value}"
                )

            pairs = self._validate_pairs(tracked_pairs) if tracked_pairs is not None else period.tracked_pairs
            if not pairs:
                raise ValidationError("A tracking period needs at least one (goal, asset) pair")

            with ExitStack() as stack:
                for asset_id in sorted({p.asset_id for p in pairs}):
                    stack.enter_context(asset_locks.hold(asset_id))

                baseline = []
                for pair in pairs:
                    if self._ledger_repo.has_snapshot(pair.goal_id, pair.asset_id, at):
                        continue
                    live = self._ledger_repo.get_allocation_target(pair.asset_id, pair.goal_id)
                    if live is None:
                        continue
                    baseline.append(
                        AllocationSnapshot(
                            snapshot_id=str(uuid.uuid4()),
                            goal_id=pair.goal_id,
                            asset_id=pair.asset_id,
                            amount=max(live.amount, ZERO),
                            timestamp=at,
                            kind=SnapshotKind.BASELINE,
                        )
                    )

                period.tracked_pairs = pairs
                period.status = PeriodStatus.EXECUTING
                period.started_at = at
                started = self._period_repo.save_started(period, baseline)

        logger.info(
            "Started tracking period %s at %s (%d pairs, %d baseline snapshots)",
            started.label,
            at.isoformat(),
            len(pairs),
            len(baseline),
        )
        return started

    def mark_complete(self, period_id: str, at: Optional[datetime] = None) -> TrackingPeriod:
        """
        Close an executing period and persist its contributions and events.

        Totals over [started_at, at) are derived once and converted into goal
        currencies. Missing rates keep the asset currency (flagged as
        unconverted); any other failure aborts the close and writes nothing.
        """
        at = to_utc(at) if at else now_utc()
        with period_locks.hold(period_id):
            period = self.get_period(period_id)
            self._require_executing(period, "close")
            if at < period.started_at:
                raise ValidationError("Completion time cannot precede the period start")

            contributions, _ = self._engine.interval_contributions(period.goal_ids, period.started_at, at)
            events = [
                PersistedEvent(
                    period_id=period.period_id,
                    position=position,
                    timestamp=e.timestamp,
                    source=e.source,
                    goal_id=e.goal_id,
                    asset_id=e.asset_id,
                    asset_currency=e.asset_currency,
                    asset_delta=e.asset_delta,
                )
                for position, e in enumerate(
                    self._engine.derived_events(period.goal_ids, period.started_at, at)
                )
            ]

            rows: list[PersistedContribution] = []
            for goal_id, contribution in contributions.items():
                goal = self._require_goal(goal_id)
                for asset_id, delta in sorted(contribution.by_asset.items()):
                    if abs(delta) <= self._epsilon:
                        continue
                    rows.append(
                        self._crystallize(
                            period.period_id,
                            goal_id,
                            asset_id,
                            contribution.asset_currencies[asset_id],
                            goal.currency,
                            delta,
                            at,
                        )
                    )

            period.status = PeriodStatus.CLOSED
            period.completed_at = at
            closed = self._period_repo.save_closed(period, rows, events)

        logger.info(
            "Closed tracking period %s at %s (%d contributions, %d events)",
            closed.label,
            at.isoformat(),
            len(rows),
            len(events),
        )
        return closed

    # =========================================================================
    # Derived views (executing periods)
    # =========================================================================

    def get_derived_totals(self, period_id: str, as_of: Optional[datetime] = None) -> DerivedTotals:
        """
        Live per-goal totals of an executing period over [started_at, as_of).

        Read-only and recomputed on every call.
        """
        period = self.get_period(period_id)
        self._require_executing(period, "derive totals for")
        as_of = to_utc(as_of) if as_of else now_utc()
        if as_of < period.started_at:
            raise ValidationError("as_of cannot precede the period start")

        contributions, warnings = self._engine.interval_contributions(
            period.goal_ids, period.started_at, as_of
        )
        totals = DerivedTotals(
            period_id=period.period_id,
            start=period.started_at,
            as_of=as_of,
            warnings=warnings,
        )

        for goal_id, contribution in contributions.items():
            goal = self._require_goal(goal_id)
            goal_total = GoalTotal(goal_id=goal_id, currency=goal.currency)
            for currency, delta in sorted(contribution.by_currency.items()):
                if abs(delta) <= self._epsilon:
                    continue
                try:
                    goal_total.total += self._converter.convert(delta, currency, goal.currency, as_of).amount
                except RateUnavailableError as e:
                    goal_total.unconverted[currency] = goal_total.unconverted.get(currency, ZERO) + delta
                    pair = f"{e.from_currency}->{e.to_currency}"
                    if pair not in totals.missing_rates:
                        totals.missing_rates.append(pair)
            totals.goals[goal_id] = goal_total

        return totals

    def get_derived_events(self, period_id: str, as_of: Optional[datetime] = None) -> list[DerivedEvent]:
        """
        Per-breakpoint contribution events of the tracked goals.

        Executing periods are derived up to `as_of` (default now). Closed
        periods return the feed frozen at close; later ledger edits never
        change it.
        """
        period = self.get_period(period_id)
        if period.status == PeriodStatus.DRAFT:
            raise StateError(f"Tracking period '{period.label}' has not started")

        if period.status == PeriodStatus.CLOSED:
            return [
                DerivedEvent(
                    timestamp=e.timestamp,
                    source=e.source,
                    asset_id=e.asset_id,
                    asset_currency=e.asset_currency,
                    goal_id=e.goal_id,
                    asset_delta=e.asset_delta,
                )
                for e in self._period_repo.list_events(period_id)
            ]

        end = to_utc(as_of) if as_of else now_utc()
        return self._engine.derived_events(period.goal_ids, period.started_at, end)

    # =========================================================================
    # Closed periods
    # =========================================================================

    def get_contributions(self, period_id: str) -> list[PersistedContribution]:
        """Persisted contribution rows of a closed period."""
        period = self.get_period(period_id)
        self._require_closed(period)
        return self._period_repo.list_contributions(period_id)

    def get_closed_totals(self, period_id: str) -> dict[str, GoalTotal]:
        """Per-goal totals of a closed period, summed from its persisted rows."""
        period = self.get_period(period_id)
        self._require_closed(period)

        totals: dict[str, GoalTotal] = {}
        for goal_id in period.goal_ids:
            totals[goal_id] = GoalTotal(goal_id=goal_id, currency=self._require_goal(goal_id).currency)

        for row in self._period_repo.list_contributions(period_id):
            goal_total = totals.setdefault(
                row.goal_id, GoalTotal(goal_id=row.goal_id, currency=self._require_goal(row.goal_id).currency)
            )
            if row.converted:
                goal_total.total += row.amount
            else:
                goal_total.unconverted[row.currency] = goal_total.unconverted.get(row.currency, ZERO) + row.amount
        return totals

    # =========================================================================
    # Helpers
    # =========================================================================

    def _crystallize(
        self,
        period_id: str,
        goal_id: str,
        asset_id: str,
        asset_currency: str,
        goal_currency: str,
        delta: Decimal,
        at: datetime,
    ) -> PersistedContribution:
        try:
            result = self._converter.convert(delta, asset_currency, goal_currency, at)
        except RateUnavailableError:
            logger.warning(
                "Persisting goal %s / asset %s contribution unconverted (%s)",
                goal_id,
                asset_id,
                asset_currency,
            )
            return PersistedContribution(
                contribution_id=str(uuid.uuid4()),
                period_id=period_id,
                goal_id=goal_id,
                asset_id=asset_id,
                timestamp=at,
                asset_amount=delta,
                asset_currency=asset_currency,
                amount=delta,
                currency=asset_currency,
                converted=False,
            )

        return PersistedContribution(
            contribution_id=str(uuid.uuid4()),
            period_id=period_id,
            goal_id=goal_id,
            asset_id=asset_id,
            timestamp=at,
            asset_amount=delta,
            asset_currency=asset_currency,
            amount=result.amount,
            currency=goal_currency,
            exchange_rate=result.rate,
            rate_timestamp=result.rate_timestamp,
            converted=True,
        )

    def _validate_pairs(self, pairs: Iterable[TrackedPair]) -> list[TrackedPair]:
        """Check ids exist; drop duplicates keeping first-seen order."""
        unique = list(dict.fromkeys(TrackedPair(p.goal_id, p.asset_id) for p in pairs))
        for pair in unique:
            self._require_goal(pair.goal_id)
            if not self._asset_repo.get_by_id(pair.asset_id):
                raise NotFoundError("Asset", pair.asset_id)
        return unique

    def _require_goal(self, goal_id: str):
        goal = self._goal_repo.get_by_id(goal_id)
        if not goal:
            raise NotFoundError("Goal", goal_id)
        return goal

    @staticmethod
    def _require_executing(period: TrackingPeriod, action: str) -> None:
        if period.status != PeriodStatus.EXECUTING:
            raise StateError(
                f"Cannot {action} tracking period '{period.label}': status is {period.status.value}"
            )

    @staticmethod
    def _require_closed(period: TrackingPeriod) -> None:
        if period.status != PeriodStatus.CLOSED:
            raise StateError(
                f"Tracking period '{period.label}' is not closed: status is {period.status.value}"
            )
