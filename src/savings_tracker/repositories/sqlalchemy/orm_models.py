"""SQLAlchemy ORM model definitions."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    Integer,
    Text,
    ForeignKey,
    Numeric,
    Enum as SqlEnum,
)
from sqlalchemy.orm import relationship

from savings_tracker.repositories.sqlalchemy.database import Base
from savings_tracker.domain.models.enums import EventSource, PeriodStatus, SnapshotKind

AMOUNT = Numeric(precision=28, scale=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AssetORM(Base):
    """SQLAlchemy model for Asset."""

    __tablename__ = "assets"

    asset_id = Column(String(36), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    currency = Column(String(16), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    events = relationship("BalanceEventORM", back_populates="asset")


class GoalORM(Base):
    """SQLAlchemy model for Goal."""

    __tablename__ = "goals"

    goal_id = Column(String(36), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    currency = Column(String(16), nullable=False)
    target_amount = Column(AMOUNT, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class BalanceEventORM(Base):
    """SQLAlchemy model for BalanceEvent (ledger entry)."""

    __tablename__ = "balance_events"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), unique=True, nullable=False)
    asset_id = Column(String(36), ForeignKey("assets.asset_id"), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False)
    amount = Column(AMOUNT, nullable=False)
    note = Column(Text, nullable=True)

    asset = relationship("AssetORM", back_populates="events")


class AllocationTargetORM(Base):
    """SQLAlchemy model for the live AllocationTarget of an (asset, goal) pair."""

    __tablename__ = "allocation_targets"

    asset_id = Column(String(36), ForeignKey("assets.asset_id"), primary_key=True)
    goal_id = Column(String(36), ForeignKey("goals.goal_id"), primary_key=True)
    amount = Column(AMOUNT, nullable=False)
    updated_at = Column(DateTime, nullable=True)


class AllocationSnapshotORM(Base):
    """SQLAlchemy model for AllocationSnapshot (allocation history)."""

    __tablename__ = "allocation_snapshots"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(String(36), unique=True, nullable=False)
    goal_id = Column(String(36), ForeignKey("goals.goal_id"), nullable=False, index=True)
    asset_id = Column(String(36), ForeignKey("assets.asset_id"), nullable=False, index=True)
    amount = Column(AMOUNT, nullable=False)
    timestamp = Column(DateTime, nullable=False)
    kind = Column(SqlEnum(SnapshotKind), nullable=False, default=SnapshotKind.CHANGE)


class TrackingPeriodORM(Base):
    """SQLAlchemy model for TrackingPeriod."""

    __tablename__ = "tracking_periods"

    period_id = Column(String(36), primary_key=True)
    label = Column(String(16), unique=True, nullable=False)
    status = Column(SqlEnum(PeriodStatus), nullable=False, default=PeriodStatus.DRAFT)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    tracked_pairs = relationship(
        "TrackedPairORM",
        back_populates="period",
        cascade="all, delete-orphan",
        order_by="TrackedPairORM.position",
    )


class TrackedPairORM(Base):
    """SQLAlchemy model for a (goal, asset) pair tracked during a period."""

    __tablename__ = "period_tracked_pairs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    period_id = Column(String(36), ForeignKey("tracking_periods.period_id"), nullable=False)
    goal_id = Column(String(36), ForeignKey("goals.goal_id"), nullable=False)
    asset_id = Column(String(36), ForeignKey("assets.asset_id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    period = relationship("TrackingPeriodORM", back_populates="tracked_pairs")


class PersistedContributionORM(Base):
    """SQLAlchemy model for PersistedContribution (immutable, append-only)."""

    __tablename__ = "persisted_contributions"

    contribution_id = Column(String(36), primary_key=True)
    period_id = Column(String(36), ForeignKey("tracking_periods.period_id"), nullable=False, index=True)
    goal_id = Column(String(36), ForeignKey("goals.goal_id"), nullable=False)
    asset_id = Column(String(36), ForeignKey("assets.asset_id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    asset_amount = Column(AMOUNT, nullable=False)
    asset_currency = Column(String(16), nullable=False)
    amount = Column(AMOUNT, nullable=False)
    currency = Column(String(16), nullable=False)
    exchange_rate = Column(AMOUNT, nullable=True)
    rate_timestamp = Column(DateTime, nullable=True)
    converted = Column(Boolean, nullable=False, default=True)


class PersistedEventORM(Base):
    """SQLAlchemy model for PersistedEvent (contribution feed of a closed period)."""

    __tablename__ = "persisted_events"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    period_id = Column(String(36), ForeignKey("tracking_periods.period_id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    timestamp = Column(DateTime, nullable=False)
    source = Column(SqlEnum(EventSource), nullable=False)
    goal_id = Column(String(36), ForeignKey("goals.goal_id"), nullable=False)
    asset_id = Column(String(36), ForeignKey("assets.asset_id"), nullable=False)
    asset_currency = Column(String(16), nullable=False)
    asset_delta = Column(AMOUNT, nullable=False)
