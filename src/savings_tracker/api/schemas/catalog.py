"""Pydantic schemas for asset and goal endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class AssetCreate(BaseModel):
    """Request schema for creating an asset."""

    name: str = Field(..., min_length=1, max_length=255, description="Unique asset name")
    currency: str = Field(..., min_length=1, max_length=10, description="Currency code, e.g. USD or BTC")


class AssetResponse(BaseModel):
    """Response schema for a single asset."""

    model_config = {"from_attributes": True}

    asset_id: str
    name: str
    currency: str
    created_at: Optional[datetime] = None


class GoalCreate(BaseModel):
    """Request schema for creating a goal."""

    name: str = Field(..., min_length=1, max_length=255, description="Unique goal name")
    currency: Optional[str] = Field(
        default=None, min_length=1, max_length=10, description="Defaults to the base currency"
    )
    target_amount: Optional[Decimal] = Field(default=None, ge=0)


class GoalResponse(BaseModel):
    """Response schema for a single goal."""

    model_config = {"from_attributes": True}

    goal_id: str
    name: str
    currency: str
    target_amount: Optional[Decimal] = None
    created_at: Optional[datetime] = None


class BalanceResponse(BaseModel):
    """Balance of an asset at a point in time."""

    asset_id: str
    currency: str
    balance: Decimal
    unallocated: Decimal
    as_of: datetime


class FundedResponse(BaseModel):
    """Funded amounts of every goal of one asset."""

    asset_id: str
    currency: str
    as_of: datetime
    balance: Decimal
    targets: dict[str, Decimal]
    funded: dict[str, Decimal]
    unallocated: Decimal


class GoalFundedResponse(BaseModel):
    """Funded amount of a goal summed across its assets (asset units)."""

    goal_id: str
    as_of: datetime
    funded: Decimal
