"""Repository protocol definitions (interfaces)."""

from savings_tracker.repositories.protocols.catalog_repo import AssetRepository, GoalRepository
from savings_tracker.repositories.protocols.ledger_repo import LedgerRepository
from savings_tracker.repositories.protocols.period_repo import PeriodRepository

__all__ = [
    "AssetRepository",
    "GoalRepository",
    "LedgerRepository",
    "PeriodRepository",
]
