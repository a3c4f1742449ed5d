"""Goal endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from savings_tracker.api.deps import get_catalog_service, get_derivation_engine
from savings_tracker.api.schemas import GoalCreate, GoalResponse, GoalFundedResponse
from savings_tracker.core.timezone import now_utc, to_utc
from savings_tracker.services import CatalogService, DerivationEngine

router = APIRouter(prefix="/goals", tags=["goals"])


@router.post("", response_model=GoalResponse, status_code=201)
def create_goal(
    data: GoalCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> GoalResponse:
    """Create a new savings goal."""
    goal = catalog.create_goal(
        name=data.name,
        currency=data.currency,
        target_amount=data.target_amount,
    )
    return GoalResponse.model_validate(goal)


@router.get("", response_model=list[GoalResponse])
def list_goals(
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[GoalResponse]:
    """List all goals."""
    return [GoalResponse.model_validate(g) for g in catalog.list_goals()]


@router.get("/{goal_id}", response_model=GoalResponse)
def get_goal(
    goal_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> GoalResponse:
    """Get a single goal."""
    return GoalResponse.model_validate(catalog.get_goal(goal_id))


@router.get("/{goal_id}/funded", response_model=GoalFundedResponse)
def get_goal_funded(
    goal_id: str,
    as_of: Optional[datetime] = Query(None),
    catalog: CatalogService = Depends(get_catalog_service),
    engine: DerivationEngine = Depends(get_derivation_engine),
) -> GoalFundedResponse:
    """Funded amount of a goal, summed across the assets funding it."""
    catalog.get_goal(goal_id)
    as_of = to_utc(as_of) if as_of else now_utc()
    return GoalFundedResponse(goal_id=goal_id, as_of=as_of, funded=engine.funded(goal_id, as_of))
