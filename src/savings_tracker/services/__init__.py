"""Service layer - business logic orchestration."""

from savings_tracker.services.catalog_service import CatalogService
from savings_tracker.services.allocation_manager import AllocationManager
from savings_tracker.services.derivation_engine import DerivationEngine
from savings_tracker.services.currency_converter import CurrencyConverter
from savings_tracker.services.period_controller import PeriodController

__all__ = [
    "CatalogService",
    "AllocationManager",
    "DerivationEngine",
    "CurrencyConverter",
    "PeriodController",
]
