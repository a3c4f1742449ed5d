"""Catalog service for assets and goals."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from savings_tracker.config.settings import get_settings
from savings_tracker.core.exceptions import NotFoundError, ValidationError
from savings_tracker.core.timezone import now_utc
from savings_tracker.domain.models import Asset, Goal
from savings_tracker.repositories.protocols import (
    AssetRepository,
    GoalRepository,
    LedgerRepository,
)


class CatalogService:
    """
    Service for managing the balance holders (assets) and savings goals.

    Names are unique per kind; currency codes are stored upper case.
    """

    def __init__(
        self,
        asset_repo: AssetRepository,
        goal_repo: GoalRepository,
        ledger_repo: LedgerRepository,
    ):
        self._asset_repo = asset_repo
        self._goal_repo = goal_repo
        self._ledger_repo = ledger_repo

    def create_asset(self, name: str, currency: str) -> Asset:
        """
        Create a new asset.

        Args:
            name: Unique asset name
            currency: Currency code of the asset's balance (e.g. USD, BTC)

        Returns:
            Created Asset instance
        """
        name = self._require_name(name)
        currency = self._require_currency(currency)
        if self._asset_repo.get_by_name(name):
            raise ValidationError(f"Asset with name '{name}' already exists")

        asset = Asset(
            asset_id=str(uuid.uuid4()),
            name=name,
            currency=currency,
            created_at=now_utc(),
        )
        return self._asset_repo.create(asset)

    def create_goal(
        self,
        name: str,
        currency: Optional[str] = None,
        target_amount: Optional[Decimal] = None,
    ) -> Goal:
        """
        Create a new goal; `target_amount` is informational.

        The currency defaults to the configured base currency.
        """
        name = self._require_name(name)
        if currency is None:
            currency = get_settings().base_currency
        currency = self._require_currency(currency)
        if target_amount is not None and target_amount < 0:
            raise ValidationError("Goal target amount cannot be negative")
        if self._goal_repo.get_by_name(name):
            raise ValidationError(f"Goal with name '{name}' already exists")

        goal = Goal(
            goal_id=str(uuid.uuid4()),
            name=name,
            currency=currency,
            target_amount=target_amount,
            created_at=now_utc(),
        )
        return self._goal_repo.create(goal)

    def get_asset(self, asset_id: str) -> Asset:
        """Get asset by ID."""
        asset = self._asset_repo.get_by_id(asset_id)
        if not asset:
            raise NotFoundError("Asset", asset_id)
        return asset

    def get_goal(self, goal_id: str) -> Goal:
        """Get goal by ID."""
        goal = self._goal_repo.get_by_id(goal_id)
        if not goal:
            raise NotFoundError("Goal", goal_id)
        return goal

    def list_assets(self) -> list[Asset]:
        return self._asset_repo.list_all()

    def list_goals(self) -> list[Goal]:
        return self._goal_repo.list_all()

    def get_balance(self, asset_id: str, as_of: Optional[datetime] = None) -> Decimal:
        """Balance of an asset: sum of its events up to `as_of` (default now)."""
        self.get_asset(asset_id)
        events = self._ledger_repo.list_balance_events(asset_id, until=as_of or now_utc())
        return sum((e.amount for e in events), Decimal("0"))

    @staticmethod
    def _require_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        return name

    @staticmethod
    def _require_currency(currency: str) -> str:
        currency = (currency or "").strip().upper()
        if not currency or not currency.isalnum() or len(currency) > 10:
            raise ValidationError(f"Invalid currency code: '{currency}'")
        return currency
