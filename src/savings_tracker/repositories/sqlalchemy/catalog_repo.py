"""SQLAlchemy implementations of AssetRepository and GoalRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from savings_tracker.core.timezone import to_utc, to_naive_utc
from savings_tracker.domain.models import Asset, Goal
from savings_tracker.repositories.sqlalchemy.orm_models import AssetORM, GoalORM


class SqlAlchemyAssetRepository:
    """SQLAlchemy-backed asset repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, asset: Asset) -> Asset:
        """Persist a new asset."""
        orm_asset = AssetORM(
            asset_id=asset.asset_id,
            name=asset.name,
            currency=asset.currency,
            created_at=to_naive_utc(asset.created_at),
        )
        self._db.add(orm_asset)
        self._db.commit()
        self._db.refresh(orm_asset)
        return self._to_domain(orm_asset)

    def get_by_id(self, asset_id: str) -> Optional[Asset]:
        """Retrieve asset by ID."""
        orm_asset = self._db.query(AssetORM).filter(AssetORM.asset_id == asset_id).first()
        return self._to_domain(orm_asset) if orm_asset else None

    def get_by_name(self, name: str) -> Optional[Asset]:
        """Retrieve asset by name."""
        orm_asset = self._db.query(AssetORM).filter(AssetORM.name == name).first()
        return self._to_domain(orm_asset) if orm_asset else None

    def list_all(self) -> list[Asset]:
        """List all assets."""
        orm_assets = self._db.query(AssetORM).order_by(AssetORM.name).all()
        return [self._to_domain(a) for a in orm_assets]

    @staticmethod
    def _to_domain(orm: AssetORM) -> Asset:
        """Convert ORM model to domain model."""
        return Asset(
            asset_id=orm.asset_id,
            name=orm.name,
            currency=orm.currency,
            created_at=to_utc(orm.created_at) if orm.created_at else None,
        )


class SqlAlchemyGoalRepository:
    """SQLAlchemy-backed goal repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, goal: Goal) -> Goal:
        """Persist a new goal."""
        orm_goal = GoalORM(
            goal_id=goal.goal_id,
            name=goal.name,
            currency=goal.currency,
            target_amount=goal.target_amount,
            created_at=to_naive_utc(goal.created_at),
        )
        self._db.add(orm_goal)
        self._db.commit()
        self._db.refresh(orm_goal)
        return self._to_domain(orm_goal)

    def get_by_id(self, goal_id: str) -> Optional[Goal]:
        """Retrieve goal by ID."""
        orm_goal = self._db.query(GoalORM).filter(GoalORM.goal_id == goal_id).first()
        return self._to_domain(orm_goal) if orm_goal else None

    def get_by_name(self, name: str) -> Optional[Goal]:
        """Retrieve goal by name."""
        orm_goal = self._db.query(GoalORM).filter(GoalORM.name == name).first()
        return self._to_domain(orm_goal) if orm_goal else None

    def list_all(self) -> list[Goal]:
        """List all goals."""
        orm_goals = self._db.query(GoalORM).order_by(GoalORM.name).all()
        return [self._to_domain(g) for g in orm_goals]

    @staticmethod
    def _to_domain(orm: GoalORM) -> Goal:
        """Convert ORM model to domain model."""
        return Goal(
            goal_id=orm.goal_id,
            name=orm.name,
            currency=orm.currency,
            target_amount=Decimal(str(orm.target_amount)) if orm.target_amount is not None else None,
            created_at=to_utc(orm.created_at) if orm.created_at else None,
        )
