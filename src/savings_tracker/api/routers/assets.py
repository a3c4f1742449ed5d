"""Asset, allocation and deposit endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from savings_tracker.api.deps import (
    get_allocation_manager,
    get_catalog_service,
    get_derivation_engine,
)
from savings_tracker.api.schemas import (
    AssetCreate,
    AssetResponse,
    BalanceResponse,
    FundedResponse,
    AllocationUpdateRequest,
    AllocationResponse,
    AllocationListResponse,
    DepositRequest,
    BalanceEventResponse,
)
from savings_tracker.core.timezone import now_utc, to_utc
from savings_tracker.services import AllocationManager, CatalogService, DerivationEngine

router = APIRouter(prefix="/assets", tags=["assets"])


@router.post("", response_model=AssetResponse, status_code=201)
def create_asset(
    data: AssetCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> AssetResponse:
    """Create a new asset."""
    asset = catalog.create_asset(name=data.name, currency=data.currency)
    return AssetResponse.model_validate(asset)


@router.get("", response_model=list[AssetResponse])
def list_assets(
    catalog: CatalogService = Depends(get_catalog_service),
) -> list[AssetResponse]:
    """List all assets."""
    return [AssetResponse.model_validate(a) for a in catalog.list_assets()]


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(
    asset_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> AssetResponse:
    """Get a single asset."""
    return AssetResponse.model_validate(catalog.get_asset(asset_id))


@router.get("/{asset_id}/balance", response_model=BalanceResponse)
def get_balance(
    asset_id: str,
    as_of: Optional[datetime] = Query(None, description="Point in time (default now)"),
    catalog: CatalogService = Depends(get_catalog_service),
    manager: AllocationManager = Depends(get_allocation_manager),
) -> BalanceResponse:
    """Balance of an asset and the part earmarked for no goal."""
    as_of = to_utc(as_of) if as_of else now_utc()
    asset = catalog.get_asset(asset_id)
    return BalanceResponse(
        asset_id=asset.asset_id,
        currency=asset.currency,
        balance=catalog.get_balance(asset_id, as_of),
        unallocated=manager.get_unallocated_amount(asset_id, as_of),
        as_of=as_of,
    )


@router.get("/{asset_id}/funded", response_model=FundedResponse)
def get_funded(
    asset_id: str,
    as_of: Optional[datetime] = Query(None),
    engine: DerivationEngine = Depends(get_derivation_engine),
) -> FundedResponse:
    """Funded amount of every goal of an asset at a point in time."""
    as_of = to_utc(as_of) if as_of else now_utc()
    ledger = engine.load_ledger(asset_id)
    point = engine.funded_at(asset_id, as_of)
    return FundedResponse(
        asset_id=asset_id,
        currency=ledger.currency,
        as_of=as_of,
        balance=point.balance,
        targets=point.targets,
        funded=point.funded,
        unallocated=point.unallocated,
    )


@router.get("/{asset_id}/allocations", response_model=AllocationListResponse)
def get_allocations(
    asset_id: str,
    manager: AllocationManager = Depends(get_allocation_manager),
) -> AllocationListResponse:
    """Live allocation targets of an asset."""
    return _allocation_list(asset_id, manager)


@router.put("/{asset_id}/allocations", response_model=AllocationListResponse)
def update_allocations(
    asset_id: str,
    data: AllocationUpdateRequest,
    manager: AllocationManager = Depends(get_allocation_manager),
) -> AllocationListResponse:
    """Replace all allocation targets of an asset."""
    targets = {item.goal_id: item.amount for item in data.allocations}
    manager.update_allocations(asset_id, targets, at=data.at)
    return _allocation_list(asset_id, manager)


@router.delete("/{asset_id}/allocations/{goal_id}", response_model=AllocationListResponse)
def remove_allocation(
    asset_id: str,
    goal_id: str,
    manager: AllocationManager = Depends(get_allocation_manager),
) -> AllocationListResponse:
    """Drop one goal from an asset."""
    manager.remove_allocation(asset_id, goal_id)
    return _allocation_list(asset_id, manager)


@router.post("/{asset_id}/deposits", response_model=BalanceEventResponse, status_code=201)
def record_deposit(
    asset_id: str,
    data: DepositRequest,
    manager: AllocationManager = Depends(get_allocation_manager),
) -> BalanceEventResponse:
    """Record a deposit (positive) or withdrawal (negative)."""
    event = manager.record_deposit(asset_id, data.amount, at=data.at, note=data.note)
    return BalanceEventResponse.model_validate(event)


def _allocation_list(asset_id: str, manager: AllocationManager) -> AllocationListResponse:
    return AllocationListResponse(
        asset_id=asset_id,
        allocations=[AllocationResponse.model_validate(t) for t in manager.get_allocations(asset_id)],
        unallocated=manager.get_unallocated_amount(asset_id),
    )
