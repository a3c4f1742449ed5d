"""SQLAlchemy implementation of LedgerRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from savings_tracker.core.timezone import to_utc, to_naive_utc
from savings_tracker.domain.models import (
    AllocationSnapshot,
    AllocationTarget,
    BalanceEvent,
)
from savings_tracker.repositories.sqlalchemy.orm_models import (
    AllocationSnapshotORM,
    AllocationTargetORM,
    BalanceEventORM,
)


class SqlAlchemyLedgerRepository:
    """SQLAlchemy-backed append-only ledger."""

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Balance events
    # =========================================================================

    def append_balance_event(self, event: BalanceEvent) -> BalanceEvent:
        """Append a balance-changing event."""
        orm_event = self._event_to_orm(event)
        self._db.add(orm_event)
        self._db.commit()
        self._db.refresh(orm_event)
        return self._event_to_domain(orm_event)

    def record_balance_change(
        self,
        event: BalanceEvent,
        upserts: list[AllocationTarget],
        removed_goal_ids: list[str],
        snapshots: list[AllocationSnapshot],
    ) -> BalanceEvent:
        """Append a balance event and its target changes in a single transaction."""
        try:
            orm_event = self._event_to_orm(event)
            self._db.add(orm_event)
            self._stage_allocation_changes(event.asset_id, upserts, removed_goal_ids, snapshots)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        self._db.refresh(orm_event)
        return self._event_to_domain(orm_event)

    def list_balance_events(
        self,
        asset_id: str,
        until: Optional[datetime] = None,
    ) -> list[BalanceEvent]:
        """List an asset's events in ledger order."""
        query = self._db.query(BalanceEventORM).filter(BalanceEventORM.asset_id == asset_id)
        if until is not None:
            query = query.filter(BalanceEventORM.timestamp <= to_naive_utc(until))
        query = query.order_by(BalanceEventORM.timestamp, BalanceEventORM.seq)
        return [self._event_to_domain(e) for e in query.all()]

    # =========================================================================
    # Live allocation targets
    # =========================================================================

    def list_allocation_targets(self, asset_id: str) -> list[AllocationTarget]:
        """List the live targets of an asset."""
        orm_targets = (
            self._db.query(AllocationTargetORM)
            .filter(AllocationTargetORM.asset_id == asset_id)
            .order_by(AllocationTargetORM.goal_id)
            .all()
        )
        return [self._target_to_domain(t) for t in orm_targets]

    def get_allocation_target(self, asset_id: str, goal_id: str) -> Optional[AllocationTarget]:
        """Get the live target of one (asset, goal) pair."""
        orm_target = self._db.get(AllocationTargetORM, (asset_id, goal_id))
        return self._target_to_domain(orm_target) if orm_target else None

    def list_asset_ids_for_goal(self, goal_id: str) -> list[str]:
        """Assets with a live target or any snapshot for the goal."""
        live = self._db.query(AllocationTargetORM.asset_id).filter(
            AllocationTargetORM.goal_id == goal_id
        )
        historical = self._db.query(AllocationSnapshotORM.asset_id).filter(
            AllocationSnapshotORM.goal_id == goal_id
        )
        asset_ids = {row[0] for row in live.all()} | {row[0] for row in historical.all()}
        return sorted(asset_ids)

    def apply_allocation_changes(
        self,
        asset_id: str,
        upserts: list[AllocationTarget],
        removed_goal_ids: list[str],
        snapshots: list[AllocationSnapshot],
    ) -> list[AllocationSnapshot]:
        """Write target changes and their snapshots in a single transaction."""
        try:
            orm_snapshots = self._stage_allocation_changes(asset_id, upserts, removed_goal_ids, snapshots)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        for orm_snapshot in orm_snapshots:
            self._db.refresh(orm_snapshot)
        return [self._snapshot_to_domain(s) for s in orm_snapshots]

    def _stage_allocation_changes(
        self,
        asset_id: str,
        upserts: list[AllocationTarget],
        removed_goal_ids: list[str],
        snapshots: list[AllocationSnapshot],
    ) -> list[AllocationSnapshotORM]:
        """Add target and snapshot changes to the session without committing."""
        for target in upserts:
            orm_target = self._db.get(AllocationTargetORM, (asset_id, target.goal_id))
            if orm_target is None:
                orm_target = AllocationTargetORM(asset_id=asset_id, goal_id=target.goal_id)
                self._db.add(orm_target)
            orm_target.amount = target.amount
            orm_target.updated_at = to_naive_utc(target.updated_at)

        if removed_goal_ids:
            self._db.query(AllocationTargetORM).filter(
                AllocationTargetORM.asset_id == asset_id,
                AllocationTargetORM.goal_id.in_(removed_goal_ids),
            ).delete()

        orm_snapshots = [self._snapshot_to_orm(s) for s in snapshots]
        self._db.add_all(orm_snapshots)
        return orm_snapshots

    # =========================================================================
    # Allocation snapshots
    # =========================================================================

    def append_allocation_snapshot(self, snapshot: AllocationSnapshot) -> AllocationSnapshot:
        """Append one allocation snapshot."""
        orm_snapshot = self._snapshot_to_orm(snapshot)
        self._db.add(orm_snapshot)
        self._db.commit()
        self._db.refresh(orm_snapshot)
        return self._snapshot_to_domain(orm_snapshot)

    def list_allocation_snapshots(self, goal_id: str, asset_id: str) -> list[AllocationSnapshot]:
        """List the snapshots of one (goal, asset) pair in ledger order."""
        orm_snapshots = (
            self._db.query(AllocationSnapshotORM)
            .filter(
                AllocationSnapshotORM.goal_id == goal_id,
                AllocationSnapshotORM.asset_id == asset_id,
            )
            .order_by(AllocationSnapshotORM.timestamp, AllocationSnapshotORM.seq)
            .all()
        )
        return [self._snapshot_to_domain(s) for s in orm_snapshots]

    def list_snapshots_for_asset(self, asset_id: str) -> list[AllocationSnapshot]:
        """List the snapshots of every goal funded by an asset, in ledger order."""
        orm_snapshots = (
            self._db.query(AllocationSnapshotORM)
            .filter(AllocationSnapshotORM.asset_id == asset_id)
            .order_by(AllocationSnapshotORM.timestamp, AllocationSnapshotORM.seq)
            .all()
        )
        return [self._snapshot_to_domain(s) for s in orm_snapshots]

    def has_snapshot(self, goal_id: str, asset_id: str, until: datetime) -> bool:
        """True if the pair has any snapshot with timestamp <= until."""
        match = (
            self._db.query(AllocationSnapshotORM.seq)
            .filter(
                AllocationSnapshotORM.goal_id == goal_id,
                AllocationSnapshotORM.asset_id == asset_id,
                AllocationSnapshotORM.timestamp <= to_naive_utc(until),
            )
            .first()
        )
        return match is not None

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    @staticmethod
    def _event_to_orm(event: BalanceEvent) -> BalanceEventORM:
        return BalanceEventORM(
            event_id=event.event_id,
            asset_id=event.asset_id,
            timestamp=to_naive_utc(event.timestamp),
            amount=event.amount,
            note=event.note,
        )

    @staticmethod
    def _snapshot_to_orm(snapshot: AllocationSnapshot) -> AllocationSnapshotORM:
        return AllocationSnapshotORM(
            snapshot_id=snapshot.snapshot_id,
            goal_id=snapshot.goal_id,
            asset_id=snapshot.asset_id,
            amount=snapshot.amount,
            timestamp=to_naive_utc(snapshot.timestamp),
            kind=snapshot.kind,
        )

    @staticmethod
    def _event_to_domain(orm: BalanceEventORM) -> BalanceEvent:
        return BalanceEvent(
            event_id=orm.event_id,
            asset_id=orm.asset_id,
            timestamp=to_utc(orm.timestamp),
            amount=Decimal(str(orm.amount)),
            note=orm.note,
        )

    @staticmethod
    def _target_to_domain(orm: AllocationTargetORM) -> AllocationTarget:
        return AllocationTarget(
            asset_id=orm.asset_id,
            goal_id=orm.goal_id,
            amount=Decimal(str(orm.amount)),
            updated_at=to_utc(orm.updated_at) if orm.updated_at else None,
        )

    @staticmethod
    def _snapshot_to_domain(orm: AllocationSnapshotORM) -> AllocationSnapshot:
        return AllocationSnapshot(
            snapshot_id=orm.snapshot_id,
            goal_id=orm.goal_id,
            asset_id=orm.asset_id,
            amount=Decimal(str(orm.amount)),
            timestamp=to_utc(orm.timestamp),
            kind=orm.kind,
            sequence=orm.seq,
        )
