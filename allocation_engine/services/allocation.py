"""
Service layer for budget allocation operations.

This module contains the business logic for allocations: CRUD, the lock and
status lifecycle, distribution and utilization refresh. Every mutation runs
under the allocation's exclusive lock, checks the lifecycle state before any
other validation, and commits its changes together with the audit entry in a
single transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.clients.base import (
    BudgetReferenceService,
    EntityReferenceService,
    LedgerService,
)
from allocation_engine.core.cache import get_cache, invalidate_cache_pattern, set_cache
from allocation_engine.core.config import settings
from allocation_engine.core.exceptions import NoEntitiesError, NotFoundError, ValidationError
from allocation_engine.core.logging import logger
from allocation_engine.db.audit import record_action
from allocation_engine.engines.distribution import (
    CENT,
    DistributionEngine,
    DistributionEntity,
    bounded_money,
    to_money,
)
from allocation_engine.engines.lifecycle import AllocationState
from allocation_engine.models.allocation import (
    AllocationDimension,
    AllocationLine,
    AllocationMethod,
    AllocationStatus,
    BudgetAllocation,
    PeriodType,
)
from allocation_engine.schemas.allocation import (
    AllocationCreate,
    AllocationFilter,
    AllocationLineUpdate,
    AllocationOptions,
    AllocationSummary,
    AllocationUpdate,
    BudgetAllocation as BudgetAllocationSchema,
    DistributeRequest,
    OptionItem,
    WaterfallBucket,
)
from allocation_engine.services.line_store import AllocationLineStore
from allocation_engine.services.locks import allocation_locks
from allocation_engine.services.utilization import UtilizationTracker
from allocation_engine.services.waterfall import WaterfallAggregator
from allocation_engine.utils.pagination import PaginatedResponse, PaginationParams, paginate_query

RESOURCE_TYPE = "BUDGET_ALLOCATION"
ZERO = Decimal("0.00")

# Fields a locked allocation must keep.
STRUCTURAL_FIELDS = ("source_amount", "allocation_method", "dimension")

METHOD_LABELS = {
    AllocationMethod.TOP_DOWN: "Top-Down (Waterfall)",
    AllocationMethod.BOTTOM_UP: "Bottom-Up (Roll-Up)",
    AllocationMethod.EQUAL_SPLIT: "Equal Split",
    AllocationMethod.PROPORTIONAL: "Proportional (by Prior Year)",
    AllocationMethod.WEIGHTED: "Weighted (Custom Weights)",
}

DIMENSION_LABELS = {
    AllocationDimension.CUSTOMER: "By Customer",
    AllocationDimension.CHANNEL: "By Channel",
    AllocationDimension.PRODUCT: "By Product",
    AllocationDimension.CATEGORY: "By Category",
    AllocationDimension.REGION: "By Region",
    AllocationDimension.BRAND: "By Brand",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _label(value: str) -> str:
    return value.replace("_", " ").title()


class AllocationManager:
    """Service class for budget allocation operations."""

    engine = DistributionEngine()

    @staticmethod
    async def create(
        db: AsyncSession,
        allocation_in: AllocationCreate,
        budget_service: Optional[BudgetReferenceService] = None,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> BudgetAllocation:
        """
        Create a new allocation in draft status with no lines.

        Args:
            db: Database session
            allocation_in: Allocation creation data
            budget_service: Used to default the source amount from the budget
            actor: Who requested the change
            ip_address: IP address of the client
            user_agent: User agent string

        Returns:
            Created allocation

        Raises:
            ValidationError: if the name is blank, the source amount is
                negative or cannot be determined, or the dates are reversed
        """
        logger.info(f"Creating budget allocation: {allocation_in.name!r}")

        name = (allocation_in.name or "").strip()
        if not name:
            raise ValidationError("Allocation name is required", {"field": "name"})
        AllocationManager._validate_dates(allocation_in.start_date, allocation_in.end_date)

        source_amount = allocation_in.source_amount
        if source_amount is None:
            if not allocation_in.budget_id or budget_service is None:
                raise ValidationError(
                    "Source amount is required when no budget is linked",
                    {"field": "source_amount"},
                )
            budget = await budget_service.get_budget(allocation_in.budget_id)
            source_amount = budget.amount
            logger.debug(f"Source amount defaulted from budget {budget.budget_id}: {source_amount}")
        source_amount = AllocationManager._validate_source_amount(source_amount)

        data = allocation_in.model_dump(exclude={"source_amount", "name", "currency"})
        allocation = BudgetAllocation(
            **data,
            name=name,
            source_amount=source_amount,
            allocated_amount=ZERO,
            utilized_amount=ZERO,
            remaining_amount=ZERO,
            utilization_pct=ZERO,
            currency=(allocation_in.currency or settings.default_currency).upper(),
            status=AllocationStatus.DRAFT,
            locked=False,
            generation=0,
            created_by=actor,
        )

        try:
            db.add(allocation)
            await db.flush()
            record_action(
                db,
                action="CREATE",
                resource_type=RESOURCE_TYPE,
                resource_id=str(allocation.id),
                details={
                    "name": allocation.name,
                    "source_amount": allocation.source_amount,
                    "allocation_method": allocation.allocation_method,
                    "dimension": allocation.dimension,
                    "budget_id": allocation.budget_id,
                },
                actor=actor,
                ip_address=ip_address,
                user_agent=user_agent
            )
            await db.commit()
            await db.refresh(allocation)
        except Exception:
            await db.rollback()
            raise

        await invalidate_cache_pattern()
        logger.info(f"Created budget allocation with ID: {allocation.id}")
        return allocation

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        allocation_id: UUID
    ) -> Optional[BudgetAllocation]:
        """
        Get an allocation by ID.

        Returns:
            Allocation if found, None otherwise
        """
        logger.debug(f"Getting budget allocation by ID: {allocation_id}")

        result = await db.execute(
            select(BudgetAllocation).where(BudgetAllocation.id == allocation_id)
        )
        return result.scalars().first()

    @staticmethod
    async def get(db: AsyncSession, allocation_id: UUID) -> BudgetAllocation:
        """Get an allocation by ID or raise ``NotFoundError``."""
        allocation = await AllocationManager.get_by_id(db, allocation_id)
        if allocation is None:
            logger.warning(f"Budget allocation not found, ID: {allocation_id}")
            raise NotFoundError(f"Budget allocation not found: {allocation_id}")
        return allocation

    @staticmethod
    async def get_with_lines(
        db: AsyncSession,
        allocation_id: UUID
    ) -> Tuple[BudgetAllocation, List[AllocationLine]]:
        allocation = await AllocationManager.get(db, allocation_id)
        lines = await AllocationLineStore.get_lines(db, allocation)
        return allocation, lines

    @staticmethod
    async def get_all(
        db: AsyncSession,
        filters: Optional[AllocationFilter] = None,
        pagination: Optional[PaginationParams] = None
    ) -> PaginatedResponse[BudgetAllocationSchema]:
        """
        List allocations with filtering and pagination.

        Args:
            db: Database session
            filters: Optional field filters and free-text search
            pagination: Page, size and sort order

        Returns:
            A page of allocations
        """
        filters = filters or AllocationFilter()
        pagination = pagination or PaginationParams()
        logger.debug(f"Listing budget allocations, filters={filters.model_dump(exclude_none=True)}")

        query = select(BudgetAllocation)
        if filters.status is not None:
            query = query.where(BudgetAllocation.status == filters.status)
        if filters.allocation_method is not None:
            query = query.where(BudgetAllocation.allocation_method == filters.allocation_method)
        if filters.dimension is not None:
            query = query.where(BudgetAllocation.dimension == filters.dimension)
        if filters.budget_id:
            query = query.where(BudgetAllocation.budget_id == filters.budget_id)
        if filters.fiscal_year is not None:
            query = query.where(BudgetAllocation.fiscal_year == filters.fiscal_year)
        if filters.locked is not None:
            query = query.where(BudgetAllocation.locked == filters.locked)
        if filters.search:
            term = f"%{filters.search}%"
            query = query.where(
                or_(
                    BudgetAllocation.name.ilike(term),
                    BudgetAllocation.description.ilike(term)
                )
            )

        page = await paginate_query(db, query, pagination, BudgetAllocation)
        return PaginatedResponse[BudgetAllocationSchema](
            **page.model_dump(exclude={"items"}),
            items=[BudgetAllocationSchema.model_validate(item) for item in page.items],
        )

    @staticmethod
    async def update(
        db: AsyncSession,
        allocation_id: UUID,
        allocation_in: AllocationUpdate,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> BudgetAllocation:
        """
        Update an allocation's fields.

        Lines are left alone; a new distribution is needed to apply a changed
        method, dimension or source amount to them.

        Raises:
            LockedError: if the allocation is locked
            InvalidStateError: if the allocation is archived
            ValidationError: if the patch is invalid
        """
        logger.info(f"Updating budget allocation with ID: {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                AllocationState.of(allocation).require_mutable("update")

                update_data = allocation_in.model_dump(exclude_unset=True)
                if "name" in update_data:
                    update_data["name"] = (update_data["name"] or "").strip()
                    if not update_data["name"]:
                        raise ValidationError("Allocation name is required", {"field": "name"})
                if "source_amount" in update_data:
                    source_amount = AllocationManager._validate_source_amount(update_data["source_amount"])
                    if source_amount < allocation.allocated_amount:
                        raise ValidationError(
                            "Source amount cannot be less than the amount already allocated",
                            {"allocated_amount": str(allocation.allocated_amount)},
                        )
                    update_data["source_amount"] = source_amount
                if "currency" in update_data and update_data["currency"]:
                    update_data["currency"] = update_data["currency"].upper()
                for field in STRUCTURAL_FIELDS + ("name", "period_type", "currency"):
                    if field in update_data and update_data[field] is None:
                        raise ValidationError(f"{field} cannot be cleared", {"field": field})
                AllocationManager._validate_dates(
                    update_data.get("start_date", allocation.start_date),
                    update_data.get("end_date", allocation.end_date),
                )

                changes = {}
                for field, value in update_data.items():
                    old = getattr(allocation, field)
                    if old != value:
                        changes[field] = {"old": old, "new": value}
                        setattr(allocation, field, value)

                if changes:
                    allocation.updated_at = _now()
                    record_action(
                        db,
                        action="UPDATE",
                        resource_type=RESOURCE_TYPE,
                        resource_id=str(allocation.id),
                        details=changes,
                        actor=actor,
                        ip_address=ip_address,
                        user_agent=user_agent
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        logger.info(f"Updated budget allocation ID: {allocation_id} ({len(changes)} fields changed)")
        return allocation

    @staticmethod
    async def delete(
        db: AsyncSession,
        allocation_id: UUID,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> None:
        """
        Delete an allocation together with all of its lines.

        Raises:
            NotFoundError: if the allocation does not exist
            LockedError: if the allocation is locked
        """
        logger.info(f"Deleting budget allocation with ID: {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                state = AllocationState.of(allocation)
                if state.locked:
                    state.require_mutable("delete")

                allocation_values = {
                    "name": allocation.name,
                    "source_amount": allocation.source_amount,
                    "allocated_amount": allocation.allocated_amount,
                    "status": allocation.status,
                    "generation": allocation.generation,
                }
                await AllocationLineStore.delete_all(db, allocation.id)
                await db.delete(allocation)
                record_action(
                    db,
                    action="DELETE",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation_id),
                    details=allocation_values,
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        logger.info(f"Deleted budget allocation ID: {allocation_id}")

    @staticmethod
    async def transition(
        db: AsyncSession,
        allocation_id: UUID,
        target: AllocationStatus,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> BudgetAllocation:
        """
        Move an allocation along its lifecycle.

        Raises:
            LockedError: if the allocation is locked
            InvalidStateError: if the move is not allowed from the current status
        """
        target = AllocationStatus(target)
        logger.info(f"Status change to {target.value} requested for allocation {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                state = AllocationState.of(allocation)
                new_state = state.with_status(target)

                allocation.status = new_state.status
                allocation.updated_at = _now()
                if new_state.status == AllocationStatus.APPROVED:
                    allocation.approved_by = actor
                    allocation.approved_at = allocation.updated_at
                elif new_state.status == AllocationStatus.DRAFT:
                    allocation.approved_by = None
                    allocation.approved_at = None

                record_action(
                    db,
                    action="TRANSITION",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={"old": state.status, "new": new_state.status},
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        logger.info(f"Allocation {allocation_id} moved from {state.status.value} to {target.value}")
        return allocation

    @staticmethod
    async def lock(
        db: AsyncSession,
        allocation_id: UUID,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> BudgetAllocation:
        """Freeze an allocation against structural changes."""
        logger.info(f"Locking budget allocation {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                AllocationState.of(allocation).require_lockable()

                allocation.locked = True
                allocation.locked_by = actor
                allocation.locked_at = _now()
                record_action(
                    db,
                    action="LOCK",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={"locked_by": actor},
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        return allocation

    @staticmethod
    async def unlock(
        db: AsyncSession,
        allocation_id: UUID,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> BudgetAllocation:
        """Release a lock. Every other field is left exactly as it was."""
        logger.info(f"Unlocking budget allocation {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                AllocationState.of(allocation).require_unlockable()

                previous_holder = allocation.locked_by
                allocation.locked = False
                allocation.locked_by = None
                allocation.locked_at = None
                record_action(
                    db,
                    action="UNLOCK",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={"previously_locked_by": previous_holder},
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        return allocation

    @staticmethod
    async def distribute(
        db: AsyncSession,
        allocation_id: UUID,
        request: Optional[DistributeRequest] = None,
        entity_service: Optional[EntityReferenceService] = None,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[BudgetAllocation, List[AllocationLine]]:
        """
        Distribute the allocation's source amount and replace its line set.

        The new lines are computed completely before anything is written;
        the swap and the allocation roll-up commit together or not at all.

        Args:
            db: Database session
            allocation_id: Allocation to distribute
            request: Overrides and optional explicit entities
            entity_service: Source of entities when the request has none

        Returns:
            The allocation and its new lines

        Raises:
            LockedError, InvalidStateError, NoEntitiesError, WeightSumZeroError,
            InvalidMethodError, ValidationError, ReferenceDataError
        """
        request = request or DistributeRequest()
        logger.info(f"Distribution requested for budget allocation {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                AllocationState.of(allocation).require_mutable("distribute")

                entities = await AllocationManager._resolve_entities(allocation, request, entity_service)
                result = AllocationManager.engine.distribute(
                    allocation.source_amount,
                    entities,
                    allocation.allocation_method,
                    overrides=request.overrides,
                    budget_id=allocation.budget_id,
                )

                previous_generation = allocation.generation
                lines = await AllocationLineStore.replace_lines(db, allocation, result.lines)
                allocated = result.allocated_amount
                allocation.allocated_amount = allocated
                allocation.utilized_amount = ZERO
                allocation.remaining_amount = allocated
                allocation.utilization_pct = ZERO
                allocation.updated_at = _now()

                record_action(
                    db,
                    action="DISTRIBUTE",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={
                        "allocation_method": result.method,
                        "line_count": len(lines),
                        "allocated_amount": allocated,
                        "unallocated_amount": result.unallocated_amount,
                        "generation": {"old": previous_generation, "new": allocation.generation},
                        "overrides": request.overrides,
                    },
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.warning(f"Distribution of allocation {allocation_id} failed: {e}")
                raise

        await invalidate_cache_pattern()
        logger.info(
            f"Distributed allocation {allocation_id}: {len(lines)} lines, "
            f"allocated={allocated}, generation={allocation.generation}"
        )
        return allocation, lines

    @staticmethod
    async def refresh_utilization(
        db: AsyncSession,
        allocation_id: UUID,
        ledger: LedgerService,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[BudgetAllocation, List[AllocationLine]]:
        """
        Pull spend and commitments from the ledger for every line.

        Allowed on locked allocations. On a ledger failure nothing is written
        and ``LedgerUnavailableError`` is raised; the call can be retried.
        """
        logger.info(f"Utilization refresh requested for budget allocation {allocation_id}")

        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                lines = await UtilizationTracker.refresh(db, allocation, ledger)
                record_action(
                    db,
                    action="REFRESH_UTILIZATION",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={
                        "utilized_amount": allocation.utilized_amount,
                        "remaining_amount": allocation.remaining_amount,
                        "utilization_pct": allocation.utilization_pct,
                    },
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        return allocation, lines

    @staticmethod
    async def annotate_line(
        db: AsyncSession,
        allocation_id: UUID,
        line_id: UUID,
        line_in: AllocationLineUpdate,
        actor: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> AllocationLine:
        """Edit the notes or status of one line. Allowed while locked."""
        async with allocation_locks.hold(allocation_id):
            try:
                allocation = await AllocationManager.get(db, allocation_id)
                line = await AllocationLineStore.annotate_line(db, allocation, line_id, line_in)
                record_action(
                    db,
                    action="UPDATE_LINE",
                    resource_type=RESOURCE_TYPE,
                    resource_id=str(allocation.id),
                    details={"line_id": line_id, **line_in.model_dump(exclude_unset=True)},
                    actor=actor,
                    ip_address=ip_address,
                    user_agent=user_agent
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await invalidate_cache_pattern()
        return line

    @staticmethod
    async def get_summary(db: AsyncSession) -> AllocationSummary:
        """
        Aggregate counts and amounts across all allocations. Read-only.

        Returns:
            Counts by status, totals and the average utilization percent
        """
        cached = await get_cache("summary")
        if cached is not None:
            logger.debug("Allocation summary served from cache")
            return AllocationSummary.model_validate(cached)

        result = await db.execute(
            select(
                BudgetAllocation.status,
                BudgetAllocation.locked,
                BudgetAllocation.source_amount,
                BudgetAllocation.allocated_amount,
                BudgetAllocation.utilized_amount,
                BudgetAllocation.remaining_amount,
                BudgetAllocation.utilization_pct,
            )
        )
        rows = result.all()

        by_status = {status.value: 0 for status in AllocationStatus}
        locked = 0
        total_source = total_allocated = total_utilized = total_remaining = ZERO
        utilization_sum = ZERO
        for row in rows:
            by_status[AllocationStatus(row.status).value] += 1
            locked += 1 if row.locked else 0
            total_source += to_money(row.source_amount)
            total_allocated += to_money(row.allocated_amount)
            total_utilized += to_money(row.utilized_amount)
            total_remaining += to_money(row.remaining_amount)
            utilization_sum += to_money(row.utilization_pct)

        avg_utilization = (utilization_sum / len(rows)).quantize(CENT) if rows else ZERO
        summary = AllocationSummary(
            total=len(rows),
            locked=locked,
            by_status=by_status,
            total_source=total_source,
            total_allocated=total_allocated,
            total_utilized=total_utilized,
            total_remaining=total_remaining,
            avg_utilization=avg_utilization,
        )
        await set_cache("summary", summary.model_dump(mode="json"))
        return summary

    @staticmethod
    async def build_waterfall(
        db: AsyncSession,
        budget_service: BudgetReferenceService,
        budget_id: Optional[str] = None
    ) -> List[WaterfallBucket]:
        return await WaterfallAggregator.build(db, budget_service, budget_id)

    @staticmethod
    def get_options() -> AllocationOptions:
        """Enumerated values for populating allocation forms."""
        return AllocationOptions(
            allocation_methods=[
                OptionItem(value=m.value, label=METHOD_LABELS[m]) for m in AllocationMethod
            ],
            dimensions=[
                OptionItem(value=d.value, label=DIMENSION_LABELS[d]) for d in AllocationDimension
            ],
            period_types=[
                OptionItem(value=p.value, label=_label(p.value)) for p in PeriodType
            ],
            statuses=[
                OptionItem(value=s.value, label=_label(s.value)) for s in AllocationStatus
            ],
        )

    @staticmethod
    async def _resolve_entities(
        allocation: BudgetAllocation,
        request: DistributeRequest,
        entity_service: Optional[EntityReferenceService]
    ) -> List[DistributionEntity]:
        dimension = AllocationDimension(allocation.dimension)
        if request.entities is not None:
            return [
                DistributionEntity(
                    dimension_name=entity.name,
                    dimension_type=dimension,
                    dimension_id=entity.id,
                    prior_year_amount=entity.prior_year_amount,
                )
                for entity in request.entities
            ]

        if entity_service is None:
            raise NoEntitiesError("No entities supplied and no entity service configured")

        records = await entity_service.list_entities(dimension.value, request.entity_filter)
        logger.debug(f"Loaded {len(records)} {dimension.value} entities for allocation {allocation.id}")
        return [
            DistributionEntity(
                dimension_name=record.name,
                dimension_type=dimension,
                dimension_id=record.entity_id,
                prior_year_amount=record.prior_year_amount,
            )
            for record in records
        ]

    @staticmethod
    def _validate_source_amount(value) -> Decimal:
        if value is None:
            raise ValidationError("Source amount is required", {"field": "source_amount"})
        amount = bounded_money(value, "source_amount")
        if amount < 0:
            raise ValidationError("Source amount cannot be negative", {"field": "source_amount"})
        return amount

    @staticmethod
    def _validate_dates(start_date, end_date) -> None:
        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                "Start date must be on or before end date",
                {"start_date": str(start_date), "end_date": str(end_date)},
            )
