"""Allocation manager: live targets, their history and balance events."""

import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from savings_tracker.config.settings import get_settings
from savings_tracker.core.exceptions import NotFoundError, ValidationError
from savings_tracker.core.locks import asset_locks
from savings_tracker.core.timezone import now_utc, to_utc
from savings_tracker.domain.models import (
    AllocationSnapshot,
    AllocationTarget,
    BalanceEvent,
    SnapshotKind,
)
from savings_tracker.domain.views import ConsistencyWarning
from savings_tracker.repositories.protocols import (
    AssetRepository,
    GoalRepository,
    LedgerRepository,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class AllocationManager:
    """
    Owns the live allocation targets and writes their history.

    Every change of a live target appends an AllocationSnapshot in the same
    transaction, so the derivation engine can reconstruct any past state.
    Writers on one asset are serialized.
    """

    def __init__(
        self,
        asset_repo: AssetRepository,
        goal_repo: GoalRepository,
        ledger_repo: LedgerRepository,
        epsilon: Optional[Decimal] = None,
    ):
        self._asset_repo = asset_repo
        self._goal_repo = goal_repo
        self._ledger_repo = ledger_repo
        self._epsilon = epsilon if epsilon is not None else get_settings().amount_epsilon

    # =========================================================================
    # Allocations
    # =========================================================================

    def update_allocations(
        self,
        asset_id: str,
        new_targets: Mapping[str, Decimal],
        at: Optional[datetime] = None,
    ) -> list[AllocationTarget]:
        """
        Replace the live targets of an asset.

        Goals missing from `new_targets` (or set to zero) are dropped and get a
        zero snapshot. Unchanged values write nothing. Targets above the
        balance are accepted and reported as a consistency warning.

        Returns:
            The asset's live targets after the update
        """
        self._require_asset(asset_id)
        targets = {goal_id: self._parse_amount(amount) for goal_id, amount in new_targets.items()}
        for goal_id, amount in targets.items():
            self._require_goal(goal_id)
            if amount < 0:
                raise ValidationError(f"Allocation for goal {goal_id} cannot be negative")

        at = to_utc(at) if at else now_utc()
        with asset_locks.hold(asset_id):
            current = {t.goal_id: t.amount for t in self._ledger_repo.list_allocation_targets(asset_id)}
            upserts, removed, snapshots = self._plan_changes(asset_id, current, targets, at, SnapshotKind.CHANGE)
            if upserts or removed or snapshots:
                self._ledger_repo.apply_allocation_changes(asset_id, upserts, removed, snapshots)
            live = self._ledger_repo.list_allocation_targets(asset_id)
            self._check_consistency(asset_id, live, at)
            return live

    def remove_allocation(
        self,
        asset_id: str,
        goal_id: str,
        at: Optional[datetime] = None,
    ) -> list[AllocationTarget]:
        """Drop one goal from an asset, keeping the others."""
        self._require_asset(asset_id)
        with asset_locks.hold(asset_id):
            current = {t.goal_id: t.amount for t in self._ledger_repo.list_allocation_targets(asset_id)}
            if goal_id not in current:
                raise NotFoundError("Allocation", f"{asset_id}/{goal_id}")
            remaining = {g: amount for g, amount in current.items() if g != goal_id}
            return self.update_allocations(asset_id, remaining, at)

    def get_allocations(self, asset_id: str) -> list[AllocationTarget]:
        """Live targets of an asset."""
        self._require_asset(asset_id)
        return self._ledger_repo.list_allocation_targets(asset_id)

    def get_unallocated_amount(self, asset_id: str, as_of: Optional[datetime] = None) -> Decimal:
        """Part of the balance earmarked for no goal (never negative)."""
        self._require_asset(asset_id)
        balance = self._balance(asset_id, as_of or now_utc())
        allocated = sum((t.amount for t in self._ledger_repo.list_allocation_targets(asset_id)), ZERO)
        return max(balance - allocated, ZERO)

    # =========================================================================
    # Balance events
    # =========================================================================

    def record_deposit(
        self,
        asset_id: str,
        amount: Decimal,
        at: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> BalanceEvent:
        """
        Record a balance change (negative amount = withdrawal).

        A deposit into an asset fully allocated to exactly one goal is
        auto-tracked: that goal's target becomes the new balance. Withdrawals
        never touch targets; the shortfall is handled by proportional funding.
        The event and any target change are written in one transaction.
        """
        self._require_asset(asset_id)
        amount = self._parse_amount(amount)
        if amount == 0:
            raise ValidationError("Deposit amount cannot be zero")

        at = to_utc(at) if at else now_utc()
        event = BalanceEvent(
            event_id=str(uuid.uuid4()),
            asset_id=asset_id,
            timestamp=at,
            amount=amount,
            note=note,
        )
        with asset_locks.hold(asset_id):
            upserts: list[AllocationTarget] = []
            removed: list[str] = []
            snapshots: list[AllocationSnapshot] = []
            if amount > 0:
                balance_before = self._balance(asset_id, at)
                current = {t.goal_id: t.amount for t in self._ledger_repo.list_allocation_targets(asset_id)}
                dedicated_goal = self._dedicated_goal(current, balance_before)
                if dedicated_goal is not None:
                    new_target = balance_before + amount
                    logger.info(
                        "Auto-tracking goal %s on asset %s: %s -> %s",
                        dedicated_goal,
                        asset_id,
                        current[dedicated_goal],
                        new_target,
                    )
                    upserts, removed, snapshots = self._plan_changes(
                        asset_id,
                        current,
                        {**current, dedicated_goal: new_target},
                        at,
                        SnapshotKind.AUTO_TRACK,
                    )
            return self._ledger_repo.record_balance_change(event, upserts, removed, snapshots)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _dedicated_goal(self, current: Mapping[str, Decimal], balance: Decimal) -> Optional[str]:
        """The single goal owning the whole balance, if there is one."""
        funded = [goal_id for goal_id, amount in current.items() if amount > self._epsilon]
        if len(funded) != 1:
            return None
        total = sum(current.values(), ZERO)
        if abs(total - balance) > self._epsilon:
            return None
        return funded[0]

    def _plan_changes(
        self,
        asset_id: str,
        current: Mapping[str, Decimal],
        targets: Mapping[str, Decimal],
        at: datetime,
        kind: SnapshotKind,
    ) -> tuple[list[AllocationTarget], list[str], list[AllocationSnapshot]]:
        """Target upserts, removed goals and snapshots that move `current` to `targets`."""
        upserts: list[AllocationTarget] = []
        removed: list[str] = []
        snapshots: list[AllocationSnapshot] = []

        for goal_id in sorted(set(current) | set(targets)):
            old = current.get(goal_id, ZERO)
            new = targets.get(goal_id, ZERO)
            if new <= self._epsilon:
                new = ZERO

            if abs(new - old) <= self._epsilon:
                if new == ZERO and goal_id in current:
                    removed.append(goal_id)
                continue

            if goal_id in current and not self._ledger_repo.has_snapshot(goal_id, asset_id, at):
                # Target predates the history; record what was in effect.
                snapshots.append(self._snapshot(goal_id, asset_id, old, at, SnapshotKind.BASELINE))
            snapshots.append(self._snapshot(goal_id, asset_id, new, at, kind))

            if new == ZERO:
                removed.append(goal_id)
            else:
                upserts.append(AllocationTarget(asset_id=asset_id, goal_id=goal_id, amount=new, updated_at=at))

        return upserts, removed, snapshots

    def _check_consistency(self, asset_id: str, live: list[AllocationTarget], at: datetime) -> None:
        balance = self._balance(asset_id, at)
        total = sum((t.amount for t in live), ZERO)
        if total > max(balance, ZERO) + self._epsilon:
            warning = ConsistencyWarning(
                asset_id=asset_id,
                timestamp=at,
                balance=balance,
                total_target=total,
            )
            logger.warning(warning.message)

    def _balance(self, asset_id: str, t: datetime) -> Decimal:
        events = self._ledger_repo.list_balance_events(asset_id, until=t)
        return sum((e.amount for e in events), ZERO)

    @staticmethod
    def _snapshot(
        goal_id: str,
        asset_id: str,
        amount: Decimal,
        at: datetime,
        kind: SnapshotKind,
    ) -> AllocationSnapshot:
        return AllocationSnapshot(
            snapshot_id=str(uuid.uuid4()),
            goal_id=goal_id,
            asset_id=asset_id,
            amount=amount,
            timestamp=at,
            kind=kind,
        )

    @staticmethod
    def _parse_amount(value) -> Decimal:
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"Invalid amount: {value!r}")
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount: {value!r}")
        return amount

    def _require_asset(self, asset_id: str) -> None:
        if not self._asset_repo.get_by_id(asset_id):
            raise NotFoundError("Asset", asset_id)

    def _require_goal(self, goal_id: str) -> None:
        if not self._goal_repo.get_by_id(goal_id):
            raise NotFoundError("Goal", goal_id)
