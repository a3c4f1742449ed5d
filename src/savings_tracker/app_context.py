"""Application context for in-process service access.

Wires repositories and services around one database session so scripts and
scheduled jobs (e.g. a month-end close) can drive the tracker without HTTP.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from savings_tracker.config.settings import Settings, set_settings, get_settings
from savings_tracker.repositories.sqlalchemy.database import (
    get_session_factory,
    init_db,
    reset_database,
)
from savings_tracker.repositories.sqlalchemy import (
    SqlAlchemyAssetRepository,
    SqlAlchemyGoalRepository,
    SqlAlchemyLedgerRepository,
    SqlAlchemyPeriodRepository,
)
from savings_tracker.providers.rate_provider import RateProvider
from savings_tracker.providers.stub_provider import StubRateProvider
from savings_tracker.services import (
    AllocationManager,
    CatalogService,
    CurrencyConverter,
    DerivationEngine,
    PeriodController,
)


class AppContext:
    """In-process access to all services, sharing one session."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        rate_provider: Optional[RateProvider] = None,
    ):
        self._data_dir = data_dir
        self._rate_provider = rate_provider
        self._session: Optional[Session] = None
        self._initialized = False

        self._converter: Optional[CurrencyConverter] = None
        self._catalog: Optional[CatalogService] = None
        self._allocations: Optional[AllocationManager] = None
        self._engine: Optional[DerivationEngine] = None
        self._periods: Optional[PeriodController] = None

    def initialize(self, data_dir: Optional[Path] = None) -> None:
        """(Re)initialize settings and the database under `data_dir`."""
        if data_dir:
            self._data_dir = data_dir

        set_settings(Settings(data_dir=self._data_dir))
        reset_database()
        init_db()

        self.close()
        self._reset_services()
        self._converter = None
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def data_dir(self) -> Path:
        return get_settings().get_data_dir()

    def _get_session(self) -> Session:
        if self._session is None:
            self._session = get_session_factory()()
        return self._session

    def refresh_session(self) -> None:
        """Start a fresh session (call after external changes)."""
        self.close()
        self._reset_services()

    def _reset_services(self) -> None:
        self._catalog = None
        self._allocations = None
        self._engine = None
        self._periods = None

    @property
    def converter(self) -> CurrencyConverter:
        """Shared converter; its rate cache survives session refreshes."""
        if self._converter is None:
            self._converter = CurrencyConverter(
                provider=self._rate_provider or StubRateProvider(),
                cache_ttl_seconds=get_settings().rate_cache_ttl_seconds,
            )
        return self._converter

    @property
    def catalog(self) -> CatalogService:
        if self._catalog is None:
            session = self._get_session()
            self._catalog = CatalogService(
                asset_repo=SqlAlchemyAssetRepository(session),
                goal_repo=SqlAlchemyGoalRepository(session),
                ledger_repo=SqlAlchemyLedgerRepository(session),
            )
        return self._catalog

    @property
    def allocations(self) -> AllocationManager:
        if self._allocations is None:
            session = self._get_session()
            self._allocations = AllocationManager(
                asset_repo=SqlAlchemyAssetRepository(session),
                goal_repo=SqlAlchemyGoalRepository(session),
                ledger_repo=SqlAlchemyLedgerRepository(session),
            )
        return self._allocations

    @property
    def engine(self) -> DerivationEngine:
        if self._engine is None:
            session = self._get_session()
            self._engine = DerivationEngine(
                asset_repo=SqlAlchemyAssetRepository(session),
                ledger_repo=SqlAlchemyLedgerRepository(session),
                epsilon=get_settings().amount_epsilon,
            )
        return self._engine

    @property
    def periods(self) -> PeriodController:
        if self._periods is None:
            session = self._get_session()
            self._periods = PeriodController(
                period_repo=SqlAlchemyPeriodRepository(session),
                asset_repo=SqlAlchemyAssetRepository(session),
                goal_repo=SqlAlchemyGoalRepository(session),
                ledger_repo=SqlAlchemyLedgerRepository(session),
                converter=self.converter,
                engine=self.engine,
            )
        return self._periods

    def close(self) -> None:
        """Clean up resources."""
        if self._session:
            self._session.close()
            self._session = None
