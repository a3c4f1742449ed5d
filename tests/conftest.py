"""
Pytest configuration and fixtures for savings tracker tests.

This module provides:
- In-memory SQLite database fixtures
- Factory helpers for assets, goals and ledger entries
- Deterministic rate providers
- Time helpers for UTC timestamps
- Service and repository fixtures
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

from savings_tracker.main import app
from savings_tracker.repositories.sqlalchemy.database import Base, get_db, reset_database
# Import ORM models to register them with Base before creating tables
from savings_tracker.repositories.sqlalchemy import orm_models  # noqa: F401
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
from savings_tracker.domain.models import (
    AllocationSnapshot,
    Asset,
    BalanceEvent,
    Goal,
    SnapshotKind,
)
from savings_tracker.core.timezone import UTC
from savings_tracker.config.settings import Settings, reset_settings, set_settings


# =============================================================================
# TIMEZONE HELPERS
# =============================================================================


def utc_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 12,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create a timezone-aware UTC datetime."""
    return UTC.localize(datetime(year, month, day, hour, minute, second))


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' timestamp for deterministic tests."""
    return utc_datetime(2024, 6, 15, 14, 30, 0)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine():
    """Create test database engine with shared in-memory SQLite."""
    reset_settings()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Session:
    """Create test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def asset_repo(test_session) -> SqlAlchemyAssetRepository:
    """Provide test AssetRepository."""
    return SqlAlchemyAssetRepository(test_session)


@pytest.fixture
def goal_repo(test_session) -> SqlAlchemyGoalRepository:
    """Provide test GoalRepository."""
    return SqlAlchemyGoalRepository(test_session)


@pytest.fixture
def ledger_repo(test_session) -> SqlAlchemyLedgerRepository:
    """Provide test LedgerRepository."""
    return SqlAlchemyLedgerRepository(test_session)


@pytest.fixture
def period_repo(test_session) -> SqlAlchemyPeriodRepository:
    """Provide test PeriodRepository."""
    return SqlAlchemyPeriodRepository(test_session)


# =============================================================================
# RATE PROVIDER FIXTURES
# =============================================================================


class FailingRateProvider:
    """Rate provider whose transport always fails."""

    def __init__(self):
        self.calls = 0

    def get_rate(self, from_currency: str, to_currency: str, as_of: datetime):
        self.calls += 1
        raise ConnectionError("Network unavailable")


class NoRateProvider:
    """Rate provider that quotes nothing."""

    def get_rate(self, from_currency: str, to_currency: str, as_of: datetime):
        return None


@pytest.fixture
def rate_provider() -> StubRateProvider:
    """Provide a stub provider with round test rates."""
    return StubRateProvider(
        rates={
            ("BTC", "USD"): Decimal("50000"),
            ("EUR", "USD"): Decimal("1.10"),
            ("USD", "EUR"): Decimal("0.90"),
        }
    )


@pytest.fixture
def failing_provider() -> FailingRateProvider:
    """Provide a rate provider that always fails."""
    return FailingRateProvider()


@pytest.fixture
def converter(rate_provider) -> CurrencyConverter:
    """Provide test CurrencyConverter."""
    return CurrencyConverter(provider=rate_provider, cache_ttl_seconds=300)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def catalog_service(asset_repo, goal_repo, ledger_repo) -> CatalogService:
    """Provide test CatalogService."""
    return CatalogService(
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
    )


@pytest.fixture
def allocation_manager(asset_repo, goal_repo, ledger_repo) -> AllocationManager:
    """Provide test AllocationManager."""
    return AllocationManager(
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
    )


@pytest.fixture
def derivation_engine(asset_repo, ledger_repo) -> DerivationEngine:
    """Provide test DerivationEngine."""
    return DerivationEngine(asset_repo=asset_repo, ledger_repo=ledger_repo)


@pytest.fixture
def period_controller(
    period_repo,
    asset_repo,
    goal_repo,
    ledger_repo,
    converter,
) -> PeriodController:
    """Provide test PeriodController."""
    return PeriodController(
        period_repo=period_repo,
        asset_repo=asset_repo,
        goal_repo=goal_repo,
        ledger_repo=ledger_repo,
        converter=converter,
    )


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def asset_factory(catalog_service) -> Callable[..., Asset]:
    """Factory for creating test assets."""

    def _create_asset(name: Optional[str] = None, currency: str = "USD") -> Asset:
        if name is None:
            name = f"Test Asset {uuid.uuid4().hex[:8]}"
        return catalog_service.create_asset(name=name, currency=currency)

    return _create_asset


@pytest.fixture
def goal_factory(catalog_service) -> Callable[..., Goal]:
    """Factory for creating test goals."""

    def _create_goal(
        name: Optional[str] = None,
        currency: str = "USD",
        target_amount: Optional[Decimal] = None,
    ) -> Goal:
        if name is None:
            name = f"Test Goal {uuid.uuid4().hex[:8]}"
        return catalog_service.create_goal(name=name, currency=currency, target_amount=target_amount)

    return _create_goal


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def client(test_engine) -> TestClient:
    """Provide FastAPI test client with test database."""
    set_settings(Settings(database_url="sqlite:///:memory:"))
    reset_database()
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    reset_database()
    reset_settings()


# =============================================================================
# HELPER FUNCTIONS (exported for use in tests)
# =============================================================================


def assert_decimal_equal(
    actual: Decimal,
    expected: Decimal,
    tolerance: Decimal = Decimal("0.000001"),
) -> None:
    """Assert two Decimals are equal within tolerance."""
    diff = abs(actual - expected)
    assert diff <= tolerance, f"Expected {expected}, got {actual} (diff={diff})"


def make_event(asset_id: str, timestamp: datetime, amount: str) -> BalanceEvent:
    """Build a balance event for pure engine tests."""
    return BalanceEvent(
        event_id=str(uuid.uuid4()),
        asset_id=asset_id,
        timestamp=timestamp,
        amount=Decimal(amount),
    )


def make_snapshot(
    goal_id: str,
    asset_id: str,
    timestamp: datetime,
    amount: str,
    kind: SnapshotKind = SnapshotKind.CHANGE,
    sequence: int = 0,
) -> AllocationSnapshot:
    """Build an allocation snapshot for pure engine tests."""
    return AllocationSnapshot(
        snapshot_id=str(uuid.uuid4()),
        goal_id=goal_id,
        asset_id=asset_id,
        amount=Decimal(amount),
        timestamp=timestamp,
        kind=kind,
        sequence=sequence,
    )
