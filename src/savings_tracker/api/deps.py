"""Dependency injection for FastAPI."""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from savings_tracker.repositories.sqlalchemy.database import get_db
from savings_tracker.repositories.sqlalchemy import (
    SqlAlchemyAssetRepository,
    SqlAlchemyGoalRepository,
    SqlAlchemyLedgerRepository,
    SqlAlchemyPeriodRepository,
)
from savings_tracker.providers.stub_provider import StubRateProvider
from savings_tracker.services import (
    AllocationManager,
    CatalogService,
    CurrencyConverter,
    DerivationEngine,
    PeriodController,
)
from savings_tracker.config.settings import get_settings


def get_asset_repo(db: Session = Depends(get_db)) -> SqlAlchemyAssetRepository:
    """Provide AssetRepository instance."""
    return SqlAlchemyAssetRepository(db)


def get_goal_repo(db: Session = Depends(get_db)) -> SqlAlchemyGoalRepository:
    """Provide GoalRepository instance."""
    return SqlAlchemyGoalRepository(db)


def get_ledger_repo(db: Session = Depends(get_db)) -> SqlAlchemyLedgerRepository:
    """Provide LedgerRepository instance."""
    return SqlAlchemyLedgerRepository(db)


def get_period_repo(db: Session = Depends(get_db)) -> SqlAlchemyPeriodRepository:
    """Provide PeriodRepository instance."""
    return SqlAlchemyPeriodRepository(db)


@lru_cache(maxsize=1)
def get_currency_converter() -> CurrencyConverter:
    """Provide the shared CurrencyConverter (rate cache outlives requests)."""
    settings = get_settings()
    return CurrencyConverter(
        provider=StubRateProvider(),
        cache_ttl_seconds=settings.rate_cache_ttl_seconds,
    )


def get_catalog_service(
    asset_repo: SqlAlchemyAssetRepository = Depends(get_asset_repo),
    goal_repo: SqlAlchemyGoalRepository = Depends(get_goal_repo),
    ledger_repo: SqlAlchemyLedgerRepository = Depends(get_ledger_repo),
) -> CatalogService:
    """Provide CatalogService instance."""
    return CatalogService(
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
    )


def get_allocation_manager(
    asset_repo: SqlAlchemyAssetRepository = Depends(get_asset_repo),
    goal_repo: SqlAlchemyGoalRepository = Depends(get_goal_repo),
    ledger_repo: SqlAlchemyLedgerRepository = Depends(get_ledger_repo),
) -> AllocationManager:
    """Provide AllocationManager instance."""
    return AllocationManager(
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
    )


def get_derivation_engine(
    asset_repo: SqlAlchemyAssetRepository = Depends(get_asset_repo),
    ledger_repo: SqlAlchemyLedgerRepository = Depends(get_ledger_repo),
) -> DerivationEngine:
    """Provide DerivationEngine instance."""
    return DerivationEngine(
        asset_repo=asset_repo,
        ledger_repo=ledger_repo,
        epsilon=get_settings().amount_epsilon,
    )


def get_period_controller(
    period_repo: SqlAlchemyPeriodRepository = Depends(get_period_repo),
    asset_repo: SqlAlchemyAssetRepository = Depends(get_asset_repo),
    goal_repo: SqlAlchemyGoalRepository = Depends(get_goal_repo),
    ledger_repo: SqlAlchemyLedgerRepository = Depends(get_ledger_repo),
    converter: CurrencyConverter = Depends(get_currency_converter),
    engine: DerivationEngine = Depends(get_derivation_engine),
) -> PeriodController:
    """Provide PeriodController instance."""
    return PeriodController(
        period_repo=period_repo,
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
        converter=converter,
        engine=engine,
    )
