"""SQLAlchemy implementation of PeriodRepository."""

from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from savings_tracker.core.timezone import to_utc, to_naive_utc
from savings_tracker.domain.models import (
    AllocationSnapshot,
    PeriodStatus,
    PersistedContribution,
    PersistedEvent,
    TrackedPair,
    TrackingPeriod,
)
from savings_tracker.repositories.sqlalchemy.orm_models import (
    AllocationSnapshotORM,
    PersistedContributionORM,
    PersistedEventORM,
    TrackedPairORM,
    TrackingPeriodORM,
)


class SqlAlchemyPeriodRepository:
    """SQLAlchemy-backed tracking period repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, period: TrackingPeriod) -> TrackingPeriod:
        """Persist a new (draft) period."""
        orm_period = TrackingPeriodORM(
            period_id=period.period_id,
            label=period.label,
            status=period.status,
            created_at=to_naive_utc(period.created_at),
            started_at=to_naive_utc(period.started_at),
            completed_at=to_naive_utc(period.completed_at),
        )
        self._replace_pairs(orm_period, period.tracked_pairs)
        self._db.add(orm_period)
        self._db.commit()
        self._db.refresh(orm_period)
        return self._to_domain(orm_period)

    def get_by_id(self, period_id: str) -> Optional[TrackingPeriod]:
        """Retrieve period by ID."""
        orm_period = self._db.get(TrackingPeriodORM, period_id)
        return self._to_domain(orm_period) if orm_period else None

    def get_by_label(self, label: str) -> Optional[TrackingPeriod]:
        """Retrieve period by label (YYYY-MM)."""
        orm_period = (
            self._db.query(TrackingPeriodORM)
            .filter(TrackingPeriodORM.label == label)
            .first()
        )
        return self._to_domain(orm_period) if orm_period else None

    def list_periods(self, status: Optional[PeriodStatus] = None) -> list[TrackingPeriod]:
        """List periods, newest label first."""
        query = self._db.query(TrackingPeriodORM)
        if status is not None:
            query = query.filter(TrackingPeriodORM.status == status)
        query = query.order_by(TrackingPeriodORM.label.desc())
        return [self._to_domain(p) for p in query.all()]

    def save_started(
        self,
        period: TrackingPeriod,
        baseline_snapshots: list[AllocationSnapshot],
    ) -> TrackingPeriod:
        """Persist the draft -> executing transition and its baseline, atomically."""
        try:
            orm_period = self._require(period.period_id)
            orm_period.status = period.status
            orm_period.started_at = to_naive_utc(period.started_at)
            self._replace_pairs(orm_period, period.tracked_pairs)
            self._db.add_all(
                AllocationSnapshotORM(
                    snapshot_id=s.snapshot_id,
                    goal_id=s.goal_id,
                    asset_id=s.asset_id,
                    amount=s.amount,
                    timestamp=to_naive_utc(s.timestamp),
                    kind=s.kind,
                )
                for s in baseline_snapshots
            )
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(orm_period)
        return self._to_domain(orm_period)

    def save_closed(
        self,
        period: TrackingPeriod,
        contributions: list[PersistedContribution],
        events: Sequence[PersistedEvent] = (),
    ) -> TrackingPeriod:
        """
        Persist the executing -> closed transition, its contributions and
        its event feed.

        Either every row is written and the status flips, or nothing is
        written at all.
        """
        try:
            orm_period = self._require(period.period_id)
            orm_period.status = period.status
            orm_period.completed_at = to_naive_utc(period.completed_at)
            self._db.add_all(self._contribution_to_orm(c) for c in contributions)
            self._db.add_all(self._event_to_orm(e) for e in events)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        self._db.refresh(orm_period)
        return self._to_domain(orm_period)

    def list_contributions(self, period_id: str) -> list[PersistedContribution]:
        """Read the persisted contributions of a period."""
        orm_rows = (
            self._db.query(PersistedContributionORM)
            .filter(PersistedContributionORM.period_id == period_id)
            .order_by(PersistedContributionORM.goal_id, PersistedContributionORM.asset_id)
            .all()
        )
        return [self._contribution_to_domain(r) for r in orm_rows]

    def list_events(self, period_id: str) -> list[PersistedEvent]:
        """Read the frozen event feed of a closed period, in feed order."""
        orm_rows = (
            self._db.query(PersistedEventORM)
            .filter(PersistedEventORM.period_id == period_id)
            .order_by(PersistedEventORM.position)
            .all()
        )
        return [self._event_to_domain(r) for r in orm_rows]

    def _require(self, period_id: str) -> TrackingPeriodORM:
        orm_period = self._db.get(TrackingPeriodORM, period_id)
        if orm_period is None:
            raise ValueError(f"Tracking period not found: {period_id}")
        return orm_period

    @staticmethod
    def _replace_pairs(orm_period: TrackingPeriodORM, pairs: list[TrackedPair]) -> None:
        current = [(p.goal_id, p.asset_id) for p in orm_period.tracked_pairs]
        wanted = [(p.goal_id, p.asset_id) for p in pairs]
        if current == wanted:
            return
        orm_period.tracked_pairs = [
            TrackedPairORM(goal_id=goal_id, asset_id=asset_id, position=index)
            for index, (goal_id, asset_id) in enumerate(wanted)
        ]

    @staticmethod
    def _contribution_to_orm(c: PersistedContribution) -> PersistedContributionORM:
        return PersistedContributionORM(
            contribution_id=c.contribution_id,
            period_id=c.period_id,
            goal_id=c.goal_id,
            asset_id=c.asset_id,
            timestamp=to_naive_utc(c.timestamp),
            asset_amount=c.asset_amount,
            asset_currency=c.asset_currency,
            amount=c.amount,
            currency=c.currency,
            exchange_rate=c.exchange_rate,
            rate_timestamp=to_naive_utc(c.rate_timestamp),
            converted=c.converted,
        )

    @staticmethod
    def _contribution_to_domain(orm: PersistedContributionORM) -> PersistedContribution:
        return PersistedContribution(
            contribution_id=orm.contribution_id,
            period_id=orm.period_id,
            goal_id=orm.goal_id,
            asset_id=orm.asset_id,
            timestamp=to_utc(orm.timestamp),
            asset_amount=Decimal(str(orm.asset_amount)),
            asset_currency=orm.asset_currency,
            amount=Decimal(str(orm.amount)),
            currency=orm.currency,
            exchange_rate=Decimal(str(orm.exchange_rate)) if orm.exchange_rate is not None else None,
            rate_timestamp=to_utc(orm.rate_timestamp) if orm.rate_timestamp else None,
            converted=orm.converted,
        )

    @staticmethod
    def _event_to_orm(e: PersistedEvent) -> PersistedEventORM:
        return PersistedEventORM(
            period_id=e.period_id,
            position=e.position,
            timestamp=to_naive_utc(e.timestamp),
            source=e.source,
            goal_id=e.goal_id,
            asset_id=e.asset_id,
            asset_currency=e.asset_currency,
            asset_delta=e.asset_delta,
        )

    @staticmethod
    def _event_to_domain(orm: PersistedEventORM) -> PersistedEvent:
        return PersistedEvent(
            period_id=orm.period_id,
            position=orm.position,
            timestamp=to_utc(orm.timestamp),
            source=orm.source,
            goal_id=orm.goal_id,
            asset_id=orm.asset_id,
            asset_currency=orm.asset_currency,
            asset_delta=Decimal(str(orm.asset_delta)),
        )

    @staticmethod
    def _to_domain(orm: TrackingPeriodORM) -> TrackingPeriod:
        """Convert ORM model to domain model."""
        return TrackingPeriod(
            period_id=orm.period_id,
            label=orm.label,
            status=orm.status,
            tracked_pairs=[
                TrackedPair(goal_id=p.goal_id, asset_id=p.asset_id)
                for p in orm.tracked_pairs
            ],
            created_at=to_utc(orm.created_at) if orm.created_at else None,
            started_at=to_utc(orm.started_at) if orm.started_at else None,
            completed_at=to_utc(orm.completed_at) if orm.completed_at else None,
        )
