"""
Storage of allocation lines.

Lines are never patched one by one. A distribution writes the complete new
set under the next generation number and removes every other generation in
the same transaction, so a failure at any point leaves the previous set as
the committed one.
"""

from decimal import Decimal
from typing import Dict, List, Sequence
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.core.exceptions import NotFoundError
from allocation_engine.core.logging import logger
from allocation_engine.engines.distribution import LineDraft
from allocation_engine.models.allocation import AllocationLine, BudgetAllocation
from allocation_engine.schemas.allocation import AllocationLineUpdate

ZERO = Decimal("0.00")


class AllocationLineStore:
    """Reads and replaces the line set of an allocation."""

    @staticmethod
    async def get_lines(
        db: AsyncSession,
        allocation: BudgetAllocation
    ) -> List[AllocationLine]:
        """
        Get the current lines of an allocation, ordered by line number.

        Args:
            db: Database session
            allocation: Owning allocation

        Returns:
            Lines of the allocation's current generation
        """
        result = await db.execute(
            select(AllocationLine)
            .where(
                and_(
                    AllocationLine.allocation_id == allocation.id,
                    AllocationLine.generation == allocation.generation
                )
            )
            .order_by(AllocationLine.line_number)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_lines_for(
        db: AsyncSession,
        allocations: Sequence[BudgetAllocation]
    ) -> Dict[UUID, List[AllocationLine]]:
        """Current lines of several allocations in one query, keyed by allocation id."""
        grouped: Dict[UUID, List[AllocationLine]] = {a.id: [] for a in allocations}
        if not allocations:
            return grouped

        result = await db.execute(
            select(AllocationLine)
            .join(
                BudgetAllocation,
                and_(
                    AllocationLine.allocation_id == BudgetAllocation.id,
                    AllocationLine.generation == BudgetAllocation.generation
                )
            )
            .where(BudgetAllocation.id.in_(list(grouped)))
            .order_by(AllocationLine.allocation_id, AllocationLine.line_number)
        )
        for line in result.scalars().all():
            grouped[line.allocation_id].append(line)
        return grouped

    @staticmethod
    async def get_line(
        db: AsyncSession,
        allocation: BudgetAllocation,
        line_id: UUID
    ) -> AllocationLine:
        result = await db.execute(
            select(AllocationLine).where(
                and_(
                    AllocationLine.id == line_id,
                    AllocationLine.allocation_id == allocation.id,
                    AllocationLine.generation == allocation.generation
                )
            )
        )
        line = result.scalars().first()
        if line is None:
            raise NotFoundError(f"Allocation line not found: {line_id}")
        return line

    @staticmethod
    async def replace_lines(
        db: AsyncSession,
        allocation: BudgetAllocation,
        drafts: Sequence[LineDraft]
    ) -> List[AllocationLine]:
        """
        Swap in a new line set. The caller owns the transaction.

        Args:
            db: Database session
            allocation: Owning allocation; its generation is advanced
            drafts: Fully computed lines

        Returns:
            The new lines, ordered by line number
        """
        next_generation = (allocation.generation or 0) + 1
        logger.debug(
            f"Replacing lines of allocation {allocation.id}: "
            f"generation {allocation.generation} -> {next_generation}, {len(drafts)} lines"
        )

        new_lines = [
            AllocationLine(
                allocation_id=allocation.id,
                generation=next_generation,
                line_number=draft.line_number,
                dimension_type=draft.dimension_type,
                dimension_id=draft.dimension_id,
                dimension_name=draft.dimension_name,
                allocated_amount=draft.allocated_amount,
                allocated_pct=draft.allocated_pct,
                utilized_amount=ZERO,
                committed_amount=ZERO,
                remaining_amount=draft.allocated_amount,
                utilization_pct=ZERO,
                prior_year_amount=draft.prior_year_amount,
                prior_year_growth_pct=draft.prior_year_growth_pct,
                status="active",
            )
            for draft in drafts
        ]
        db.add_all(new_lines)
        await db.flush()

        await db.execute(
            delete(AllocationLine).where(
                and_(
                    AllocationLine.allocation_id == allocation.id,
                    AllocationLine.generation != next_generation
                )
            )
        )
        allocation.generation = next_generation
        await db.flush()
        return new_lines

    @staticmethod
    async def delete_all(db: AsyncSession, allocation_id: UUID) -> None:
        """Remove every line of an allocation, whatever its generation."""
        await db.execute(
            delete(AllocationLine).where(AllocationLine.allocation_id == allocation_id)
        )

    @staticmethod
    async def annotate_line(
        db: AsyncSession,
        allocation: BudgetAllocation,
        line_id: UUID,
        line_in: AllocationLineUpdate
    ) -> AllocationLine:
        """Apply note/status edits to one line. Amounts are not editable."""
        line = await AllocationLineStore.get_line(db, allocation, line_id)
        for field, value in line_in.model_dump(exclude_unset=True).items():
            setattr(line, field, value)
        await db.flush()
        return line
