"""Pydantic schemas for tracking period endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from savings_tracker.domain.models.enums import EventSource, PeriodStatus


class TrackedPairSchema(BaseModel):
    """A (goal, asset) pair followed by a period."""

    model_config = {"from_attributes": True}

    goal_id: str
    asset_id: str


class PeriodCreate(BaseModel):
    """Request schema for creating a draft period."""

    label: Optional[str] = Field(default=None, description="YYYY-MM (default current month)")
    tracked_pairs: list[TrackedPairSchema] = Field(default_factory=list)


class PeriodStartRequest(BaseModel):
    """Request schema for draft -> executing."""

    tracked_pairs: Optional[list[TrackedPairSchema]] = None
    at: Optional[datetime] = None


class PeriodCompleteRequest(BaseModel):
    """Request schema for executing -> closed."""

    at: Optional[datetime] = None


class PeriodResponse(BaseModel):
    """Response schema for a tracking period."""

    model_config = {"from_attributes": True}

    period_id: str
    label: str
    status: PeriodStatus
    tracked_pairs: list[TrackedPairSchema]
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GoalTotalResponse(BaseModel):
    """Per-goal total; unconverted parts are keyed by their currency."""

    goal_id: str
    currency: str
    total: Decimal
    unconverted: dict[str, Decimal]
    fully_converted: bool


class DerivedTotalsResponse(BaseModel):
    """Live totals of an executing period."""

    period_id: str
    start: datetime
    as_of: datetime
    goals: list[GoalTotalResponse]
    warnings: list[str]
    missing_rates: list[str]


class DerivedEventResponse(BaseModel):
    """One step change of a goal's funded amount."""

    model_config = {"from_attributes": True}

    timestamp: datetime
    source: EventSource
    asset_id: str
    asset_currency: str
    goal_id: str
    asset_delta: Decimal


class ContributionResponse(BaseModel):
    """Persisted contribution row of a closed period."""

    model_config = {"from_attributes": True}

    contribution_id: str
    goal_id: str
    asset_id: str
    timestamp: datetime
    asset_amount: Decimal
    asset_currency: str
    amount: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    rate_timestamp: Optional[datetime] = None
    converted: bool


class ClosedTotalsResponse(BaseModel):
    """Totals of a closed period, read from persisted rows."""

    period_id: str
    completed_at: Optional[datetime] = None
    goals: list[GoalTotalResponse]
