"""
Budget allocation API endpoints.

This module provides CRUD, lifecycle, distribution and reporting endpoints
for budget allocations. Service errors are translated into responses by the
application-level ``AllocationError`` handler.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.clients import (
    BudgetReferenceService,
    EntityReferenceService,
    LedgerService,
)
from allocation_engine.core.deps import (
    get_budget_service,
    get_entity_service,
    get_ledger_service,
    get_pagination_params,
    get_request_client,
)
from allocation_engine.core.exceptions import LockedError
from allocation_engine.core.logging import logger
from allocation_engine.db.session import get_db
from allocation_engine.models.allocation import (
    AllocationDimension,
    AllocationMethod,
    AllocationStatus,
)
from allocation_engine.schemas.allocation import (
    AllocationCreate,
    AllocationFilter,
    AllocationLine,
    AllocationLineUpdate,
    AllocationOptions,
    AllocationSummary,
    AllocationUpdate,
    BudgetAllocation,
    BudgetAllocationWithLines,
    DistributeRequest,
    StatusTransition,
    WaterfallBucket,
)
from allocation_engine.services.allocation import AllocationManager
from allocation_engine.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter()


async def require_unlocked(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> None:
    """
    Reject mutations of a locked allocation before the request body is validated.

    The services repeat the check under the allocation's exclusive lock, so the
    read here is rolled back to keep it out of their transaction.
    """
    allocation = await AllocationManager.get(db, allocation_id)
    locked = bool(allocation.locked)
    await db.rollback()
    if locked:
        logger.warning(f"Rejected mutation of locked allocation {allocation_id}")
        raise LockedError("Cannot modify a locked allocation")


@router.get("/options", response_model=AllocationOptions)
async def get_allocation_options() -> AllocationOptions:
    """Allocation methods, dimensions, period types and statuses with labels."""
    return AllocationManager.get_options()


@router.get("/summary", response_model=AllocationSummary)
async def get_allocation_summary(
    db: AsyncSession = Depends(get_db)
) -> AllocationSummary:
    """
    Get aggregate figures across all allocations.

    Returns:
        Counts by status and total amounts
    """
    logger.info("Allocation summary requested")
    return await AllocationManager.get_summary(db)


@router.get("/waterfall", response_model=List[WaterfallBucket])
async def get_allocation_waterfall(
    budget_id: Optional[str] = Query(None, description="Restrict to one budget"),
    db: AsyncSession = Depends(get_db),
    budget_service: BudgetReferenceService = Depends(get_budget_service)
) -> List[WaterfallBucket]:
    """
    Get the budget -> allocation -> line waterfall.

    Args:
        budget_id: Optional budget filter
        db: Database session
        budget_service: Budget reference service

    Returns:
        One bucket per budget
    """
    logger.info(f"Allocation waterfall requested (budget: {budget_id or 'all'})")
    return await AllocationManager.build_waterfall(db, budget_service, budget_id)


@router.get("/", response_model=PaginatedResponse[BudgetAllocation])
async def get_all_allocations(
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(get_pagination_params),
    status_filter: Optional[AllocationStatus] = Query(None, alias="status", description="Filter by status"),
    allocation_method: Optional[AllocationMethod] = Query(None, description="Filter by method"),
    dimension: Optional[AllocationDimension] = Query(None, description="Filter by dimension"),
    budget_id: Optional[str] = Query(None, description="Filter by budget ID"),
    fiscal_year: Optional[int] = Query(None, description="Filter by fiscal year"),
    locked: Optional[bool] = Query(None, description="Filter by lock flag"),
    search: Optional[str] = Query(None, description="Search name and description")
):
    """
    Get all allocations with pagination, search, sorting, and filtering.
    """
    filters = AllocationFilter(
        status=status_filter,
        allocation_method=allocation_method,
        dimension=dimension,
        budget_id=budget_id,
        fiscal_year=fiscal_year,
        locked=locked,
        search=search,
    )
    result = await AllocationManager.get_all(db, filters, pagination)
    logger.info(f"Retrieved {len(result.items)} allocations (page {result.page} of {result.pages})")
    return result


@router.post("/", response_model=BudgetAllocation, status_code=status.HTTP_201_CREATED)
async def create_allocation(
    allocation_in: AllocationCreate,
    db: AsyncSession = Depends(get_db),
    budget_service: BudgetReferenceService = Depends(get_budget_service),
    client_info=Depends(get_request_client)
) -> BudgetAllocation:
    """
    Create a new allocation in draft status.

    Args:
        allocation_in: Allocation creation data
        db: Database session
        budget_service: Used when the source amount is taken from the budget
        client_info: Acting user, client IP and user agent

    Returns:
        Created allocation
    """
    logger.info(f"Allocation creation requested by: {client_info['actor']}")
    allocation = await AllocationManager.create(
        db,
        allocation_in,
        budget_service=budget_service,
        **client_info
    )
    return allocation


@router.get("/{allocation_id}", response_model=BudgetAllocationWithLines)
async def get_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> BudgetAllocationWithLines:
    """Get an allocation with its current lines."""
    logger.info(f"Allocation details requested for ID: {allocation_id}")
    allocation, lines = await AllocationManager.get_with_lines(db, allocation_id)
    return BudgetAllocationWithLines.from_allocation(allocation, lines)


@router.put(
    "/{allocation_id}",
    response_model=BudgetAllocation,
    dependencies=[Depends(require_unlocked)],
)
async def update_allocation(
    allocation_id: UUID,
    allocation_in: AllocationUpdate,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> BudgetAllocation:
    """
    Update an allocation.

    Args:
        allocation_id: Allocation ID
        allocation_in: Allocation update data
        db: Database session
        client_info: Acting user, client IP and user agent

    Returns:
        Updated allocation
    """
    logger.info(f"Allocation update requested for ID: {allocation_id} by: {client_info['actor']}")
    return await AllocationManager.update(db, allocation_id, allocation_in, **client_info)


@router.delete("/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> None:
    """Delete an allocation and its lines."""
    logger.info(f"Allocation deletion requested for ID: {allocation_id} by: {client_info['actor']}")
    await AllocationManager.delete(db, allocation_id, **client_info)


@router.post(
    "/{allocation_id}/distribute",
    response_model=BudgetAllocationWithLines,
    dependencies=[Depends(require_unlocked)],
)
async def distribute_allocation(
    allocation_id: UUID,
    request: Optional[DistributeRequest] = None,
    db: AsyncSession = Depends(get_db),
    entity_service: EntityReferenceService = Depends(get_entity_service),
    client_info=Depends(get_request_client)
) -> BudgetAllocationWithLines:
    """
    Distribute the source amount across the allocation's dimension.

    Args:
        allocation_id: Allocation ID
        request: Overrides and optional explicit entities
        db: Database session
        entity_service: Entity reference service
        client_info: Acting user, client IP and user agent

    Returns:
        The allocation with its new lines
    """
    logger.info(f"Distribution requested for ID: {allocation_id} by: {client_info['actor']}")
    allocation, lines = await AllocationManager.distribute(
        db, allocation_id, request, entity_service, **client_info
    )
    return BudgetAllocationWithLines.from_allocation(allocation, lines)


@router.post("/{allocation_id}/lock", response_model=BudgetAllocation)
async def lock_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> BudgetAllocation:
    logger.info(f"Lock requested for ID: {allocation_id} by: {client_info['actor']}")
    return await AllocationManager.lock(db, allocation_id, **client_info)


@router.post("/{allocation_id}/unlock", response_model=BudgetAllocation)
async def unlock_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> BudgetAllocation:
    logger.info(f"Unlock requested for ID: {allocation_id} by: {client_info['actor']}")
    return await AllocationManager.unlock(db, allocation_id, **client_info)


@router.post("/{allocation_id}/refresh-utilization", response_model=BudgetAllocationWithLines)
async def refresh_allocation_utilization(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
    client_info=Depends(get_request_client)
) -> BudgetAllocationWithLines:
    """
    Refresh utilized and committed amounts from the ledger.

    Returns:
        The allocation with its refreshed lines
    """
    logger.info(f"Utilization refresh requested for ID: {allocation_id}")
    allocation, lines = await AllocationManager.refresh_utilization(
        db, allocation_id, ledger, **client_info
    )
    return BudgetAllocationWithLines.from_allocation(allocation, lines)


@router.post(
    "/{allocation_id}/status",
    response_model=BudgetAllocation,
    dependencies=[Depends(require_unlocked)],
)
async def change_allocation_status(
    allocation_id: UUID,
    transition: StatusTransition,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> BudgetAllocation:
    """Move an allocation to another lifecycle status."""
    return await AllocationManager.transition(db, allocation_id, transition.status, **client_info)


@router.get("/{allocation_id}/lines", response_model=List[AllocationLine])
async def get_allocation_lines(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> List[AllocationLine]:
    _, lines = await AllocationManager.get_with_lines(db, allocation_id)
    return lines


@router.put("/{allocation_id}/lines/{line_id}", response_model=AllocationLine)
async def update_allocation_line(
    allocation_id: UUID,
    line_id: UUID,
    line_in: AllocationLineUpdate,
    db: AsyncSession = Depends(get_db),
    client_info=Depends(get_request_client)
) -> AllocationLine:
    """Edit the notes or status of a line. Amounts cannot be edited."""
    logger.info(f"Line update requested for line {line_id} of allocation {allocation_id}")
    return await AllocationManager.annotate_line(db, allocation_id, line_id, line_in, **client_info)
