"""SQLAlchemy repository implementations."""

from savings_tracker.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    get_db,
    init_db,
    reset_database,
    Base,
)
from savings_tracker.repositories.sqlalchemy.catalog_repo import (
    SqlAlchemyAssetRepository,
    SqlAlchemyGoalRepository,
)
from savings_tracker.repositories.sqlalchemy.ledger_repo import SqlAlchemyLedgerRepository
from savings_tracker.repositories.sqlalchemy.period_repo import SqlAlchemyPeriodRepository

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_db",
    "init_db",
    "reset_database",
    "Base",
    "SqlAlchemyAssetRepository",
    "SqlAlchemyGoalRepository",
    "SqlAlchemyLedgerRepository",
    "SqlAlchemyPeriodRepository",
]
