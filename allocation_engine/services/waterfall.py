"""
Budget waterfall projection.

Groups allocations by the source budget they draw from and rolls their lines
up underneath. Allocations without a budget are left out of the waterfall;
they still appear in the list and summary views.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.clients.base import BudgetRecord, BudgetReferenceService
from allocation_engine.core.cache import get_cache, set_cache
from allocation_engine.core.exceptions import NotFoundError, ReferenceDataError
from allocation_engine.core.logging import logger
from allocation_engine.models.allocation import BudgetAllocation
from allocation_engine.schemas.allocation import (
    BudgetAllocationWithLines,
    WaterfallBucket,
)
from allocation_engine.services.line_store import AllocationLineStore

ZERO = Decimal("0.00")


class WaterfallAggregator:
    """Read-only budget -> allocation -> line roll-up."""

    @staticmethod
    async def build(
        db: AsyncSession,
        budget_service: BudgetReferenceService,
        budget_id: Optional[str] = None
    ) -> List[WaterfallBucket]:
        """
        Build waterfall buckets from the last committed state.

        Args:
            db: Database session
            budget_service: Source of budget names and totals
            budget_id: Restrict the waterfall to one budget

        Returns:
            One bucket per budget, ordered by budget id
        """
        cache_key = f"waterfall:{budget_id or 'all'}"
        cached = await get_cache(cache_key)
        if cached is not None:
            logger.debug(f"Waterfall served from cache: {cache_key}")
            return [WaterfallBucket.model_validate(bucket) for bucket in cached]

        query = select(BudgetAllocation).where(BudgetAllocation.budget_id.is_not(None))
        if budget_id:
            query = query.where(BudgetAllocation.budget_id == budget_id)
        query = query.order_by(
            BudgetAllocation.budget_id,
            BudgetAllocation.created_at,
            BudgetAllocation.name,
        )
        allocations = list((await db.execute(query)).scalars().all())
        lines_by_allocation = await AllocationLineStore.get_lines_for(db, allocations)

        grouped: Dict[str, List[BudgetAllocation]] = {}
        for allocation in allocations:
            grouped.setdefault(allocation.budget_id, []).append(allocation)

        buckets = []
        for bucket_budget_id, members in grouped.items():
            budget = await WaterfallAggregator._resolve_budget(budget_service, bucket_budget_id)
            entries = [
                BudgetAllocationWithLines.from_allocation(a, lines_by_allocation[a.id])
                for a in members
            ]
            buckets.append(WaterfallAggregator._bucket(bucket_budget_id, budget, entries))

        logger.debug(f"Built waterfall with {len(buckets)} buckets from {len(allocations)} allocations")
        await set_cache(cache_key, [bucket.model_dump(mode="json") for bucket in buckets])
        return buckets

    @staticmethod
    async def _resolve_budget(
        budget_service: BudgetReferenceService,
        budget_id: str
    ) -> Optional[BudgetRecord]:
        try:
            return await budget_service.get_budget(budget_id)
        except (ReferenceDataError, NotFoundError) as e:
            logger.warning(f"Waterfall bucket {budget_id} built without budget details: {e}")
            return None

    @staticmethod
    def _bucket(
        budget_id: str,
        budget: Optional[BudgetRecord],
        entries: List[BudgetAllocationWithLines]
    ) -> WaterfallBucket:
        total_allocated = sum((e.allocated_amount for e in entries), ZERO)
        total_line_allocated = sum(
            (line.allocated_amount for e in entries for line in e.lines), ZERO
        )
        total_utilized = sum((e.utilized_amount for e in entries), ZERO)
        total_remaining = sum((e.remaining_amount for e in entries), ZERO)

        if budget is not None:
            name = budget.name
            total_budget = budget.amount
            total_spend = budget.spent_amount if budget.spent_amount is not None else total_utilized
        else:
            name = f"Budget {budget_id}"
            total_budget = sum((e.source_amount for e in entries), ZERO)
            total_spend = total_utilized

        return WaterfallBucket(
            budget_id=budget_id,
            budget_name=name,
            total_budget=total_budget,
            total_spend=total_spend,
            total_allocated=total_allocated,
            total_line_allocated=total_line_allocated,
            total_utilized=total_utilized,
            total_remaining=total_remaining,
            allocations=entries,
        )
