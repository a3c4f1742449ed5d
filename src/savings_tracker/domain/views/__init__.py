"""View models for service outputs."""

from savings_tracker.domain.views.execution import (
    Historical,
    LiveFallback,
    TargetLookup,
    AssetLedger,
    ConsistencyWarning,
    FundedPoint,
    DerivedEvent,
    GoalContribution,
    ConversionResult,
    GoalTotal,
    DerivedTotals,
)

__all__ = [
    "Historical",
    "LiveFallback",
    "TargetLookup",
    "AssetLedger",
    "ConsistencyWarning",
    "FundedPoint",
    "DerivedEvent",
    "GoalContribution",
    "ConversionResult",
    "GoalTotal",
    "DerivedTotals",
]
