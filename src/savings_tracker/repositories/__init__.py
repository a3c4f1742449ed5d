"""Repository layer - ledger store abstractions and implementations."""

from savings_tracker.repositories.protocols import (
    AssetRepository,
    GoalRepository,
    LedgerRepository,
    PeriodRepository,
)

__all__ = [
    "AssetRepository",
    "GoalRepository",
    "LedgerRepository",
    "PeriodRepository",
]
