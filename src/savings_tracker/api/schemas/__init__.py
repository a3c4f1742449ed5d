"""Pydantic schemas for API request/response."""

from savings_tracker.api.schemas.catalog import (
    AssetCreate,
    AssetResponse,
    GoalCreate,
    GoalResponse,
    BalanceResponse,
    FundedResponse,
    GoalFundedResponse,
)
from savings_tracker.api.schemas.allocation import (
    AllocationItem,
    AllocationUpdateRequest,
    AllocationResponse,
    AllocationListResponse,
    DepositRequest,
    BalanceEventResponse,
)
from savings_tracker.api.schemas.period import (
    TrackedPairSchema,
    PeriodCreate,
    PeriodStartRequest,
    PeriodCompleteRequest,
    PeriodResponse,
    GoalTotalResponse,
    DerivedTotalsResponse,
    DerivedEventResponse,
    ContributionResponse,
    ClosedTotalsResponse,
)

__all__ = [
    "AssetCreate",
    "AssetResponse",
    "GoalCreate",
    "GoalResponse",
    "BalanceResponse",
    "FundedResponse",
    "GoalFundedResponse",
    "AllocationItem",
    "AllocationUpdateRequest",
    "AllocationResponse",
    "AllocationListResponse",
    "DepositRequest",
    "BalanceEventResponse",
    "TrackedPairSchema",
    "PeriodCreate",
    "PeriodStartRequest",
    "PeriodCompleteRequest",
    "PeriodResponse",
    "GoalTotalResponse",
    "DerivedTotalsResponse",
    "DerivedEventResponse",
    "ContributionResponse",
    "ClosedTotalsResponse",
]
