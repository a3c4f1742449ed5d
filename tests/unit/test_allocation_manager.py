"""
Unit tests for AllocationManager.

Tests cover:
- Replacing live targets and the snapshots each change writes
- Validation before any write
- Over-allocation accepted with a warning
- Deposits, withdrawals and single-owner auto-tracking
- Read helpers
"""

import logging
from decimal import Decimal

import pytest

from savings_tracker.core.exceptions import NotFoundError, ValidationError
from savings_tracker.domain.models import AllocationTarget, SnapshotKind

from tests.conftest import utc_datetime


T0 = utc_datetime(2024, 3, 1)
T1 = utc_datetime(2024, 3, 2)
T2 = utc_datetime(2024, 3, 3)
T3 = utc_datetime(2024, 3, 4)
T4 = utc_datetime(2024, 3, 5)


@pytest.fixture
def usd_asset(asset_factory):
    return asset_factory(name="Checking", currency="USD")


@pytest.fixture
def goals(goal_factory):
    return goal_factory(name="Vacation"), goal_factory(name="Emergency Fund")


# =============================================================================
# UPDATE ALLOCATION TESTS
# =============================================================================


class TestUpdateAllocations:
    """Tests for replacing live targets."""

    def test_changes_write_snapshots(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN an asset with no allocations
        WHEN I allocate 60 and 40 to two goals
        THEN live targets are set and one change snapshot per goal is written
        """
        vacation, emergency = goals

        live = allocation_manager.update_allocations(
            usd_asset.asset_id,
            {vacation.goal_id: Decimal("60"), emergency.goal_id: Decimal("40")},
            at=T0,
        )

        assert {t.goal_id: t.amount for t in live} == {
            vacation.goal_id: Decimal("60"),
            emergency.goal_id: Decimal("40"),
        }
        snapshots = ledger_repo.list_snapshots_for_asset(usd_asset.asset_id)
        assert len(snapshots) == 2
        assert all(s.kind == SnapshotKind.CHANGE and s.timestamp == T0 for s in snapshots)

    def test_unchanged_values_write_nothing(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN existing allocations
        WHEN I submit the same values again
        THEN no new snapshot is written
        """
        vacation, _ = goals
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60")}, at=T0)

        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60.0")}, at=T1)

        assert len(ledger_repo.list_snapshots_for_asset(usd_asset.asset_id)) == 1

    def test_dropped_goal_gets_zero_snapshot(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN two allocated goals
        WHEN I update with only one of them
        THEN the other gets a zero snapshot and loses its live target
        """
        vacation, emergency = goals
        allocation_manager.update_allocations(
            usd_asset.asset_id,
            {vacation.goal_id: Decimal("60"), emergency.goal_id: Decimal("40")},
            at=T0,
        )

        live = allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60")}, at=T1)

        assert [t.goal_id for t in live] == [vacation.goal_id]
        history = ledger_repo.list_allocation_snapshots(emergency.goal_id, usd_asset.asset_id)
        assert [(s.amount, s.timestamp) for s in history] == [(Decimal("40"), T0), (Decimal("0"), T1)]

    def test_negative_amount_rejected_before_write(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN a request mixing a valid and a negative amount
        WHEN I update allocations
        THEN ValidationError is raised and nothing is written
        """
        vacation, emergency = goals

        with pytest.raises(ValidationError):
            allocation_manager.update_allocations(
                usd_asset.asset_id,
                {vacation.goal_id: Decimal("10"), emergency.goal_id: Decimal("-1")},
                at=T0,
            )

        assert ledger_repo.list_allocation_targets(usd_asset.asset_id) == []
        assert ledger_repo.list_snapshots_for_asset(usd_asset.asset_id) == []

    def test_unknown_ids_rejected(self, allocation_manager, usd_asset, goals):
        """
        GIVEN an unknown goal or asset id
        WHEN I update allocations
        THEN NotFoundError is raised
        """
        vacation, _ = goals

        with pytest.raises(NotFoundError):
            allocation_manager.update_allocations(usd_asset.asset_id, {"no-such-goal": Decimal("1")})
        with pytest.raises(NotFoundError):
            allocation_manager.update_allocations("no-such-asset", {vacation.goal_id: Decimal("1")})

    def test_over_allocation_is_accepted_with_warning(self, allocation_manager, usd_asset, goals, caplog):
        """
        GIVEN a balance of 80
        WHEN I allocate 60 to each of two goals
        THEN the update succeeds and a consistency warning is logged
        """
        vacation, emergency = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("80"), at=T0)

        with caplog.at_level(logging.WARNING, logger="savings_tracker.services"):
            live = allocation_manager.update_allocations(
                usd_asset.asset_id,
                {vacation.goal_id: Decimal("60"), emergency.goal_id: Decimal("60")},
                at=T1,
            )

        assert sum(t.amount for t in live) == Decimal("120")
        assert "over-allocated" in caplog.text

    def test_target_without_history_gets_baseline_first(
        self, allocation_manager, ledger_repo, usd_asset, goals
    ):
        """
        GIVEN a live target that predates any snapshot
        WHEN I change it
        THEN a baseline of the old value precedes the change snapshot
        """
        vacation, _ = goals
        ledger_repo.apply_allocation_changes(
            usd_asset.asset_id,
            [AllocationTarget(asset_id=usd_asset.asset_id, goal_id=vacation.goal_id, amount=Decimal("25"))],
            [],
            [],
        )

        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("70")}, at=T1)

        history = ledger_repo.list_allocation_snapshots(vacation.goal_id, usd_asset.asset_id)
        assert [(s.kind, s.amount) for s in history] == [
            (SnapshotKind.BASELINE, Decimal("25")),
            (SnapshotKind.CHANGE, Decimal("70")),
        ]

    def test_remove_allocation(self, allocation_manager, usd_asset, goals):
        """
        GIVEN two allocated goals
        WHEN I remove one of them
        THEN only the other remains
        """
        vacation, emergency = goals
        allocation_manager.update_allocations(
            usd_asset.asset_id,
            {vacation.goal_id: Decimal("60"), emergency.goal_id: Decimal("40")},
            at=T0,
        )

        live = allocation_manager.remove_allocation(usd_asset.asset_id, emergency.goal_id, at=T1)

        assert [t.goal_id for t in live] == [vacation.goal_id]

    def test_remove_missing_allocation_raises(self, allocation_manager, usd_asset, goals):
        """
        GIVEN a goal not allocated on the asset
        WHEN I remove it
        THEN NotFoundError is raised
        """
        vacation, _ = goals

        with pytest.raises(NotFoundError):
            allocation_manager.remove_allocation(usd_asset.asset_id, vacation.goal_id)


# =============================================================================
# DEPOSIT AND AUTO-TRACK TESTS
# =============================================================================


class TestRecordDeposit:
    """Tests for balance events and auto-tracking."""

    def test_zero_amount_rejected(self, allocation_manager, usd_asset):
        """
        GIVEN an asset
        WHEN I record a zero deposit
        THEN ValidationError is raised
        """
        with pytest.raises(ValidationError):
            allocation_manager.record_deposit(usd_asset.asset_id, Decimal("0"))

    def test_unknown_asset_rejected(self, allocation_manager):
        """
        GIVEN no such asset
        WHEN I record a deposit
        THEN NotFoundError is raised
        """
        with pytest.raises(NotFoundError):
            allocation_manager.record_deposit("missing", Decimal("10"))

    def test_dedicated_asset_follows_deposit(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN an asset fully allocated to a single goal (100 of 100)
        WHEN I deposit 50
        THEN the goal's target becomes 150 via one auto-track snapshot
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("100")}, at=T1)

        event = allocation_manager.record_deposit(usd_asset.asset_id, Decimal("50"), at=T2)

        assert event.amount == Decimal("50")
        target = ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id)
        assert target.amount == Decimal("150")
        history = ledger_repo.list_allocation_snapshots(vacation.goal_id, usd_asset.asset_id)
        assert history[-1].kind == SnapshotKind.AUTO_TRACK
        assert history[-1].timestamp == T2

    def test_withdrawal_never_moves_targets(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN an asset fully allocated to a single goal (100 of 100)
        WHEN I withdraw 30
        THEN no snapshot is written and the target stays at 100
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("100")}, at=T1)
        snapshots_before = ledger_repo.list_snapshots_for_asset(usd_asset.asset_id)

        event = allocation_manager.record_deposit(usd_asset.asset_id, Decimal("-30"), at=T2)

        assert event.amount == Decimal("-30")
        assert ledger_repo.list_snapshots_for_asset(usd_asset.asset_id) == snapshots_before
        assert ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id).amount == Decimal("100")

    def test_deposit_after_withdrawal_keeps_target(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN a goal holding 100 of 100, then a withdrawal of 30
        WHEN I deposit 50
        THEN the asset no longer counts as dedicated: the target stays at 100 and 20 is unallocated
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("100")}, at=T1)
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("-30"), at=T2)
        assert ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id).amount == Decimal("100")

        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("50"), at=T3)

        assert ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id).amount == Decimal("100")
        assert allocation_manager.get_unallocated_amount(usd_asset.asset_id, as_of=T4) == Decimal("20")
        kinds = [s.kind for s in ledger_repo.list_allocation_snapshots(vacation.goal_id, usd_asset.asset_id)]
        assert SnapshotKind.AUTO_TRACK not in kinds

    def test_auto_track_rolls_back_with_event(self, allocation_manager, ledger_repo, usd_asset, goals, monkeypatch):
        """
        GIVEN a dedicated asset whose snapshot write fails
        WHEN I deposit 50
        THEN the error propagates and neither the event nor a target change is stored
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("100")}, at=T1)

        def failing_snapshot(snapshot):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ledger_repo, "_snapshot_to_orm", failing_snapshot)

        with pytest.raises(RuntimeError):
            allocation_manager.record_deposit(usd_asset.asset_id, Decimal("50"), at=T2)

        assert [e.amount for e in ledger_repo.list_balance_events(usd_asset.asset_id)] == [Decimal("100")]
        assert ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id).amount == Decimal("100")
        assert allocation_manager.get_unallocated_amount(usd_asset.asset_id, as_of=T3) == Decimal("0")

    def test_shared_asset_is_not_auto_tracked(self, allocation_manager, ledger_repo, usd_asset, goals):
        """
        GIVEN an asset fully allocated across two goals
        WHEN I deposit
        THEN no snapshot is written and targets are unchanged
        """
        vacation, emergency = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(
            usd_asset.asset_id,
            {vacation.goal_id: Decimal("50"), emergency.goal_id: Decimal("50")},
            at=T1,
        )

        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("20"), at=T2)

        assert len(ledger_repo.list_snapshots_for_asset(usd_asset.asset_id)) == 2
        assert {t.amount for t in ledger_repo.list_allocation_targets(usd_asset.asset_id)} == {Decimal("50")}

    def test_partially_allocated_asset_is_not_auto_tracked(
        self, allocation_manager, ledger_repo, usd_asset, goals
    ):
        """
        GIVEN a single goal holding 60 of a 100 balance
        WHEN I deposit
        THEN the target stays at 60
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60")}, at=T1)

        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("20"), at=T2)

        assert ledger_repo.get_allocation_target(usd_asset.asset_id, vacation.goal_id).amount == Decimal("60")


# =============================================================================
# READ HELPER TESTS
# =============================================================================


class TestReadHelpers:
    """Tests for allocation read helpers."""

    def test_unallocated_amount(self, allocation_manager, usd_asset, goals):
        """
        GIVEN a balance of 100 with 60 allocated
        WHEN I ask for the unallocated amount
        THEN it is 40
        """
        vacation, _ = goals
        allocation_manager.record_deposit(usd_asset.asset_id, Decimal("100"), at=T0)
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60")}, at=T1)

        assert allocation_manager.get_unallocated_amount(usd_asset.asset_id, as_of=T2) == Decimal("40")

    def test_unallocated_amount_never_negative(self, allocation_manager, usd_asset, goals):
        """
        GIVEN targets above the balance
        WHEN I ask for the unallocated amount
        THEN it is zero
        """
        vacation, _ = goals
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("60")}, at=T1)

        assert allocation_manager.get_unallocated_amount(usd_asset.asset_id, as_of=T2) == Decimal("0")

    def test_get_allocations(self, allocation_manager, usd_asset, goals):
        """
        GIVEN one allocated goal
        WHEN I list allocations
        THEN that target is returned
        """
        vacation, _ = goals
        allocation_manager.update_allocations(usd_asset.asset_id, {vacation.goal_id: Decimal("5")}, at=T0)

        allocations = allocation_manager.get_allocations(usd_asset.asset_id)

        assert len(allocations) == 1
        assert allocations[0].goal_id == vacation.goal_id
        assert allocations[0].amount == Decimal("5")
