"""Pydantic schemas for allocation and deposit endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class AllocationItem(BaseModel):
    """One goal's earmarked amount in the asset's currency."""

    goal_id: str
    amount: Decimal = Field(..., ge=0)


class AllocationUpdateRequest(BaseModel):
    """Request schema replacing all allocations of an asset."""

    allocations: list[AllocationItem]
    at: Optional[datetime] = Field(default=None, description="Change time (default now)")


class AllocationResponse(BaseModel):
    """Response schema for a live allocation target."""

    model_config = {"from_attributes": True}

    goal_id: str
    amount: Decimal
    updated_at: Optional[datetime] = None


class AllocationListResponse(BaseModel):
    """Live allocations of an asset."""

    asset_id: str
    allocations: list[AllocationResponse]
    unallocated: Decimal


class DepositRequest(BaseModel):
    """Request schema for a balance change; negative amounts are withdrawals."""

    amount: Decimal
    at: Optional[datetime] = None
    note: Optional[str] = Field(default=None, max_length=500)


class BalanceEventResponse(BaseModel):
    """Response schema for a recorded balance event."""

    model_config = {"from_attributes": True}

    event_id: str
    asset_id: str
    timestamp: datetime
    amount: Decimal
    note: Optional[str] = None
