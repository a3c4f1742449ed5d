"""
Execution derivation engine.

Merges two independent timelines of an asset (balance events and allocation
snapshots) into funded amounts per goal. Everything here is recomputed on
demand from ledger state; nothing is cached or written.

The module-level functions are pure and take explicit ledger snapshots
(`AssetLedger`). `DerivationEngine` is a read-only facade that loads those
snapshots from the repositories.
"""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Iterable, Mapping, Optional, Sequence

from savings_tracker.core.exceptions import NotFoundError
from savings_tracker.domain.models import (
    AllocationSnapshot,
    BalanceEvent,
    EventSource,
    SnapshotKind,
)
from savings_tracker.domain.views import (
    AssetLedger,
    ConsistencyWarning,
    DerivedEvent,
    FundedPoint,
    GoalContribution,
    Historical,
    LiveFallback,
    TargetLookup,
)
from savings_tracker.repositories.protocols import AssetRepository, LedgerRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DEFAULT_EPSILON = Decimal("0.0000001")


# =============================================================================
# Step functions
# =============================================================================


def balance_at(events: Iterable[BalanceEvent], t: datetime, strict: bool = False) -> Decimal:
    """
    Balance of an asset at instant `t`: sum of events with timestamp <= t.

    With `strict=True` the value just before `t` is returned (timestamp < t).
    """
    total = ZERO
    for event in events:
        if event.timestamp < t or (not strict and event.timestamp == t):
            total += event.amount
    return total


def _is_visible(snapshot: AllocationSnapshot, t: datetime, strict: bool) -> bool:
    if snapshot.timestamp < t:
        return True
    if snapshot.timestamp == t:
        # A baseline records a value that was already in effect at `t`.
        return not strict or snapshot.kind == SnapshotKind.BASELINE
    return False


def target_at(
    snapshots: Sequence[AllocationSnapshot],
    live: Optional[Decimal],
    t: datetime,
    strict: bool = False,
) -> TargetLookup:
    """
    Allocation target of one (goal, asset) pair in effect at `t`.

    Lookup order:
    1. latest snapshot visible at `t` -> Historical
    2. pair has no snapshot at all -> LiveFallback (bootstrap only)
    3. only later snapshots exist -> the earliest one if it is a baseline
       (a value that pre-existed tracking), otherwise 0 (pair did not exist yet)

    Negative values never leave this function.
    """
    chosen: Optional[AllocationSnapshot] = None
    for snapshot in snapshots:
        if _is_visible(snapshot, t, strict):
            chosen = snapshot
        elif snapshot.timestamp > t:
            break

    if chosen is not None:
        return Historical(max(chosen.amount, ZERO))
    if not snapshots:
        return LiveFallback(max(live or ZERO, ZERO))

    earliest = snapshots[0]
    if earliest.kind == SnapshotKind.BASELINE:
        return Historical(max(earliest.amount, ZERO))
    return Historical(ZERO)


def funded_amounts(balance: Decimal, targets: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """
    Split an asset balance across its goal targets.

    - sum(targets) <= balance: every goal is fully funded; the rest is slack
    - sum(targets) > balance: proportional split, sum(funded) == balance
    - sum(targets) == 0 or balance <= 0: nothing is funded

    Shares are rounded down; the last goal takes the rounding remainder so
    the shares sum to the balance exactly.
    """
    total = sum(targets.values(), ZERO)
    if total <= ZERO or balance <= ZERO:
        return {goal_id: ZERO for goal_id in targets}
    if total <= balance:
        return dict(targets)

    with localcontext() as ctx:
        ctx.rounding = ROUND_DOWN
        shares = {goal_id: balance * target / total for goal_id, target in targets.items()}

    last = list(shares)[-1]
    shares[last] = balance - sum((v for g, v in shares.items() if g != last), ZERO)
    return shares


def is_over_allocated(balance: Decimal, targets: Mapping[str, Decimal]) -> bool:
    """True when targets exceed a (clamped) balance."""
    total = sum(targets.values(), ZERO)
    return total > max(balance, ZERO) and total > ZERO


def _warning(ledger: AssetLedger, point: FundedPoint) -> ConsistencyWarning:
    return ConsistencyWarning(
        asset_id=ledger.asset_id,
        timestamp=point.timestamp,
        balance=point.balance,
        total_target=point.total_target,
    )


def funded_at(ledger: AssetLedger, t: datetime, strict: bool = False) -> FundedPoint:
    """Funded amounts of every goal of the asset at `t` (just before `t` if strict)."""
    balance = balance_at(ledger.events, t, strict=strict)
    targets = {
        goal_id: target_at(
            ledger.snapshots.get(goal_id, []),
            ledger.live_targets.get(goal_id),
            t,
            strict=strict,
        ).value
        for goal_id in ledger.goal_ids
    }
    return FundedPoint(
        timestamp=t,
        balance=balance,
        targets=targets,
        funded=funded_amounts(balance, targets),
    )


def breakpoints(ledger: AssetLedger) -> list[datetime]:
    """Union of balance-event and snapshot timestamps, ascending."""
    stamps = {e.timestamp for e in ledger.events}
    for snapshots in ledger.snapshots.values():
        stamps.update(s.timestamp for s in snapshots)
    return sorted(stamps)


def funded_series(ledger: AssetLedger) -> list[FundedPoint]:
    """
    Piecewise-constant funded amounts of an asset.

    One point per breakpoint; each point holds from its timestamp until the
    next one.
    """
    return [funded_at(ledger, t) for t in breakpoints(ledger)]


# =============================================================================
# Derived contributions
# =============================================================================


def _deltas(
    previous: Mapping[str, Decimal],
    current: Mapping[str, Decimal],
    epsilon: Decimal,
) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = {}
    for goal_id in sorted(set(previous) | set(current)):
        delta = current.get(goal_id, ZERO) - previous.get(goal_id, ZERO)
        if abs(delta) > epsilon:
            deltas[goal_id] = delta
    return deltas


def derive_events(
    ledger: AssetLedger,
    start: datetime,
    end: datetime,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> tuple[list[DerivedEvent], list[ConsistencyWarning]]:
    """
    Step changes of every (goal, asset) funded amount within [start, end).

    At a breakpoint carrying both kinds of change, allocation snapshots are
    applied first (reallocation), then balance events (deposit/withdrawal).
    The deltas of a goal sum to funded(end-) - funded(start-).
    """
    state = funded_at(ledger, start, strict=True)
    balance = state.balance
    targets = dict(state.targets)
    funded = state.funded

    events: list[DerivedEvent] = []
    warnings: list[ConsistencyWarning] = []
    if is_over_allocated(balance, targets):
        warnings.append(_warning(ledger, state))

    snapshots_at: dict[datetime, list[AllocationSnapshot]] = defaultdict(list)
    for snapshots in ledger.snapshots.values():
        for snapshot in snapshots:
            if start <= snapshot.timestamp < end:
                snapshots_at[snapshot.timestamp].append(snapshot)

    amount_at: dict[datetime, Decimal] = defaultdict(lambda: ZERO)
    for event in ledger.events:
        if start <= event.timestamp < end:
            amount_at[event.timestamp] += event.amount

    def emit(t: datetime, source: EventSource) -> None:
        nonlocal funded
        point = FundedPoint(
            timestamp=t,
            balance=balance,
            targets=dict(targets),
            funded=funded_amounts(balance, targets),
        )
        for goal_id, delta in _deltas(funded, point.funded, epsilon).items():
            events.append(
                DerivedEvent(
                    timestamp=t,
                    source=source,
                    asset_id=ledger.asset_id,
                    asset_currency=ledger.currency,
                    goal_id=goal_id,
                    asset_delta=delta,
                )
            )
        funded = point.funded

    for t in sorted(set(snapshots_at) | set(amount_at)):
        changes = sorted(snapshots_at.get(t, []), key=lambda s: s.sequence)
        if changes:
            for snapshot in changes:
                targets[snapshot.goal_id] = max(snapshot.amount, ZERO)
            emit(t, EventSource.REALLOCATION)

        net = amount_at.get(t, ZERO)
        if net != ZERO:
            balance += net
            emit(t, EventSource.DEPOSIT if net > ZERO else EventSource.WITHDRAWAL)

        # Only the settled state of a breakpoint counts as over-allocated.
        if is_over_allocated(balance, targets):
            warnings.append(
                ConsistencyWarning(
                    asset_id=ledger.asset_id,
                    timestamp=t,
                    balance=balance,
                    total_target=sum(targets.values(), ZERO),
                )
            )

    return events, warnings


def interval_contributions(
    ledgers: Iterable[AssetLedger],
    start: datetime,
    end: datetime,
    goal_ids: Optional[Iterable[str]] = None,
) -> tuple[dict[str, GoalContribution], list[ConsistencyWarning]]:
    """
    Net contribution per goal over [start, end), summed across assets.

    Each (goal, asset) amount is funded(end-) - funded(start-) in the asset
    currency. When `goal_ids` is given, those goals are always present in the
    result (with zero contributions if nothing moved) and others are dropped.
    """
    wanted = list(goal_ids) if goal_ids is not None else None
    result: dict[str, GoalContribution] = {
        goal_id: GoalContribution(goal_id=goal_id) for goal_id in (wanted or [])
    }
    warnings: list[ConsistencyWarning] = []

    for ledger in ledgers:
        before = funded_at(ledger, start, strict=True)
        after = funded_at(ledger, end, strict=True)
        for point in (before, after):
            if is_over_allocated(point.balance, point.targets):
                warnings.append(_warning(ledger, point))

        for goal_id in ledger.goal_ids:
            if wanted is not None and goal_id not in result:
                continue
            delta = after.funded.get(goal_id, ZERO) - before.funded.get(goal_id, ZERO)
            contribution = result.setdefault(goal_id, GoalContribution(goal_id=goal_id))
            contribution.by_asset[ledger.asset_id] = (
                contribution.by_asset.get(ledger.asset_id, ZERO) + delta
            )
            contribution.asset_currencies[ledger.asset_id] = ledger.currency

    return result, warnings


# =============================================================================
# Repository-backed facade
# =============================================================================


class DerivationEngine:
    """
    Read-only access to the pure derivation functions over stored ledgers.

    Holds no state between calls; every method reloads the ledger, so
    repeated calls with unchanged ledger state return identical results.
    """

    def __init__(
        self,
        asset_repo: AssetRepository,
        ledger_repo: LedgerRepository,
        epsilon: Decimal = DEFAULT_EPSILON,
    ):
        self._asset_repo = asset_repo
        self._ledger_repo = ledger_repo
        self._epsilon = epsilon

    def load_ledger(self, asset_id: str) -> AssetLedger:
        """Snapshot everything the engine needs about one asset."""
        asset = self._asset_repo.get_by_id(asset_id)
        if not asset:
            raise NotFoundError("Asset", asset_id)

        snapshots: dict[str, list[AllocationSnapshot]] = defaultdict(list)
        for snapshot in self._ledger_repo.list_snapshots_for_asset(asset_id):
            snapshots[snapshot.goal_id].append(snapshot)

        return AssetLedger(
            asset_id=asset.asset_id,
            currency=asset.currency,
            events=self._ledger_repo.list_balance_events(asset_id),
            snapshots=dict(snapshots),
            live_targets={
                t.goal_id: t.amount for t in self._ledger_repo.list_allocation_targets(asset_id)
            },
        )

    def ledgers_for_goals(self, goal_ids: Iterable[str]) -> list[AssetLedger]:
        """Ledgers of every asset funding any of the goals."""
        asset_ids: set[str] = set()
        for goal_id in goal_ids:
            asset_ids.update(self._ledger_repo.list_asset_ids_for_goal(goal_id))
        return [self.load_ledger(asset_id) for asset_id in sorted(asset_ids)]

    def balance(self, asset_id: str, t: datetime) -> Decimal:
        """Balance of an asset at `t`."""
        return balance_at(self._ledger_repo.list_balance_events(asset_id, until=t), t)

    def funded_at(self, asset_id: str, t: datetime) -> FundedPoint:
        """Funded amounts of every goal of one asset at `t`."""
        ledger = self.load_ledger(asset_id)
        point = funded_at(ledger, t)
        if is_over_allocated(point.balance, point.targets):
            self._log_warnings([_warning(ledger, point)])
        return point

    def funded(self, goal_id: str, t: datetime) -> Decimal:
        """Funded amount of a goal at `t`, summed across its assets (asset units)."""
        total = ZERO
        for ledger in self.ledgers_for_goals([goal_id]):
            total += funded_at(ledger, t).funded.get(goal_id, ZERO)
        return total

    def funded_series(self, asset_id: str) -> list[FundedPoint]:
        """Funded amounts of one asset at each of its breakpoints."""
        return funded_series(self.load_ledger(asset_id))

    def derived_events(
        self,
        goal_ids: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> list[DerivedEvent]:
        """Derived contribution events of the goals within [start, end)."""
        wanted = set(goal_ids)
        collected: list[DerivedEvent] = []
        warnings: list[ConsistencyWarning] = []
        for ledger in self.ledgers_for_goals(wanted):
            events, ledger_warnings = derive_events(ledger, start, end, self._epsilon)
            collected.extend(e for e in events if e.goal_id in wanted)
            warnings.extend(ledger_warnings)
        self._log_warnings(warnings)
        return sorted(collected, key=lambda e: e.timestamp)

    def interval_contributions(
        self,
        goal_ids: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> tuple[dict[str, GoalContribution], list[ConsistencyWarning]]:
        """Net contribution per goal over [start, end), across all funding assets."""
        goal_ids = list(goal_ids)
        contributions, warnings = interval_contributions(
            self.ledgers_for_goals(goal_ids), start, end, goal_ids=goal_ids
        )
        self._log_warnings(warnings)
        return contributions, warnings

    @staticmethod
    def _log_warnings(warnings: list[ConsistencyWarning]) -> None:
        seen: set[tuple[str, Decimal, Decimal]] = set()
        for warning in warnings:
            key = (warning.asset_id, warning.balance, warning.total_target)
            if key in seen:
                continue
            seen.add(key)
            logger.warning(warning.message)
