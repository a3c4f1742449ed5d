"""Tracking period endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from savings_tracker.api.deps import get_period_controller
from savings_tracker.api.schemas import (
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
from savings_tracker.domain.models import PeriodStatus, TrackedPair
from savings_tracker.domain.views import GoalTotal
from savings_tracker.services import PeriodController

router = APIRouter(prefix="/periods", tags=["periods"])


@router.post("", response_model=PeriodResponse, status_code=201)
def create_period(
    data: PeriodCreate,
    controller: PeriodController = Depends(get_period_controller),
) -> PeriodResponse:
    """Create a draft tracking period."""
    period = controller.create_period(
        label=data.label,
        tracked_pairs=[TrackedPair(p.goal_id, p.asset_id) for p in data.tracked_pairs],
    )
    return PeriodResponse.model_validate(period)


@router.get("", response_model=list[PeriodResponse])
def list_periods(
    status: Optional[PeriodStatus] = Query(None),
    controller: PeriodController = Depends(get_period_controller),
) -> list[PeriodResponse]:
    """List periods, newest first."""
    return [PeriodResponse.model_validate(p) for p in controller.list_periods(status)]


@router.get("/by-label/{label}", response_model=PeriodResponse)
def get_period_by_label(
    label: str,
    controller: PeriodController = Depends(get_period_controller),
) -> PeriodResponse:
    """Get a period by its YYYY-MM label."""
    return PeriodResponse.model_validate(controller.get_period_by_label(label))


@router.get("/{period_id}", response_model=PeriodResponse)
def get_period(
    period_id: str,
    controller: PeriodController = Depends(get_period_controller),
) -> PeriodResponse:
    """Get a single period."""
    return PeriodResponse.model_validate(controller.get_period(period_id))


@router.post("/{period_id}/start", response_model=PeriodResponse)
def start_tracking(
    period_id: str,
    data: PeriodStartRequest,
    controller: PeriodController = Depends(get_period_controller),
) -> PeriodResponse:
    """Move a draft period to executing."""
    pairs = None
    if data.tracked_pairs is not None:
        pairs = [TrackedPair(p.goal_id, p.asset_id) for p in data.tracked_pairs]
    period = controller.start_tracking(period_id, tracked_pairs=pairs, at=data.at)
    return PeriodResponse.model_validate(period)


@router.get("/{period_id}/totals", response_model=DerivedTotalsResponse)
def get_derived_totals(
    period_id: str,
    as_of: Optional[datetime] = Query(None),
    controller: PeriodController = Depends(get_period_controller),
) -> DerivedTotalsResponse:
    """Live per-goal totals of an executing period."""
    totals = controller.get_derived_totals(period_id, as_of)
    return DerivedTotalsResponse(
        period_id=totals.period_id,
        start=totals.start,
        as_of=totals.as_of,
        goals=[_goal_total(t) for t in totals.goals.values()],
        warnings=[w.message for w in totals.warnings],
        missing_rates=totals.missing_rates,
    )


@router.get("/{period_id}/events", response_model=list[DerivedEventResponse])
def get_derived_events(
    period_id: str,
    as_of: Optional[datetime] = Query(None),
    controller: PeriodController = Depends(get_period_controller),
) -> list[DerivedEventResponse]:
    """Per-breakpoint contribution events of a started period."""
    return [
        DerivedEventResponse.model_validate(e)
        for e in controller.get_derived_events(period_id, as_of)
    ]


@router.post("/{period_id}/complete", response_model=PeriodResponse)
def mark_complete(
    period_id: str,
    data: PeriodCompleteRequest,
    controller: PeriodController = Depends(get_period_controller),
) -> PeriodResponse:
    """Close an executing period and persist its contributions."""
    return PeriodResponse.model_validate(controller.mark_complete(period_id, at=data.at))


@router.get("/{period_id}/contributions", response_model=list[ContributionResponse])
def get_contributions(
    period_id: str,
    controller: PeriodController = Depends(get_period_controller),
) -> list[ContributionResponse]:
    """Persisted contribution rows of a closed period."""
    return [ContributionResponse.model_validate(c) for c in controller.get_contributions(period_id)]


@router.get("/{period_id}/closed-totals", response_model=ClosedTotalsResponse)
def get_closed_totals(
    period_id: str,
    controller: PeriodController = Depends(get_period_controller),
) -> ClosedTotalsResponse:
    """Per-goal totals of a closed period."""
    period = controller.get_period(period_id)
    totals = controller.get_closed_totals(period_id)
    return ClosedTotalsResponse(
        period_id=period.period_id,
        completed_at=period.completed_at,
        goals=[_goal_total(t) for t in totals.values()],
    )


def _goal_total(total: GoalTotal) -> GoalTotalResponse:
    return GoalTotalResponse(
        goal_id=total.goal_id,
        currency=total.currency,
        total=total.total,
        unconverted=total.unconverted,
        fully_converted=total.fully_converted,
    )
