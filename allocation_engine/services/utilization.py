"""
Utilization tracking.

Reconciles allocation lines against the spend ledger. Only the utilized,
committed, remaining and utilization figures are written; allocated amounts,
line numbers and the line count are never touched.
"""

import asyncio
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.clients.base import DateRange, LedgerService, SpendFigures
from allocation_engine.core.exceptions import LedgerUnavailableError
from allocation_engine.core.logging import logger
from allocation_engine.engines.distribution import CENT, percent_of, to_money
from allocation_engine.models.allocation import AllocationLine, BudgetAllocation
from allocation_engine.services.line_store import AllocationLineStore

ZERO = Decimal("0.00")


def derive_utilization(allocated: Decimal, utilized: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Remaining amount and utilization percent for an allocated/utilized pair.

    Returns:
        (remaining, utilization_pct) where remaining never goes below zero and
        utilization_pct is 0 when nothing was allocated
    """
    remaining = max(allocated - utilized, ZERO)
    return to_money(remaining), percent_of(utilized, allocated, CENT)


class UtilizationTracker:
    """Refreshes utilization figures from the ledger."""

    @staticmethod
    async def fetch_figures(
        ledger: LedgerService,
        allocation: BudgetAllocation,
        lines: List[AllocationLine]
    ) -> List[SpendFigures]:
        """
        Query the ledger for every line.

        All lookups finish before anything is returned, so a single failure
        means no line is updated.

        Raises:
            LedgerUnavailableError: if any lookup fails
        """
        date_range = DateRange(start=allocation.start_date, end=allocation.end_date)
        results = await asyncio.gather(
            *(
                ledger.get_spend_and_commitments(
                    line.dimension_type.value, line.dimension_name, date_range
                )
                for line in lines
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(
                f"Ledger lookup failed for {len(failures)} of {len(lines)} lines "
                f"of allocation {allocation.id}"
            )
            first = failures[0]
            if isinstance(first, LedgerUnavailableError):
                raise first
            raise LedgerUnavailableError(
                f"Ledger lookup failed for allocation {allocation.id}"
            ) from first
        return list(results)

    @staticmethod
    async def refresh(
        db: AsyncSession,
        allocation: BudgetAllocation,
        ledger: LedgerService
    ) -> List[AllocationLine]:
        """
        Recompute utilization for an allocation and its lines.

        The caller owns the transaction and the per-allocation lock.

        Args:
            db: Database session
            allocation: Allocation to refresh
            ledger: Spend ledger

        Returns:
            The allocation's lines with refreshed figures
        """
        lines = await AllocationLineStore.get_lines(db, allocation)
        logger.debug(f"Refreshing utilization for allocation {allocation.id} ({len(lines)} lines)")

        figures = await UtilizationTracker.fetch_figures(ledger, allocation, lines)

        total_utilized = ZERO
        total_remaining = ZERO
        for line, spend in zip(lines, figures):
            utilized = max(to_money(spend.utilized), ZERO)
            committed = max(to_money(spend.committed), ZERO)
            remaining, pct = derive_utilization(line.allocated_amount, utilized)

            line.utilized_amount = utilized
            line.committed_amount = committed
            line.remaining_amount = remaining
            line.utilization_pct = pct

            total_utilized += utilized
            total_remaining += remaining

        allocation.utilized_amount = total_utilized
        allocation.remaining_amount = total_remaining if lines else to_money(allocation.allocated_amount)
        allocation.utilization_pct = percent_of(total_utilized, allocation.allocated_amount, CENT)
        await db.flush()

        logger.info(
            f"Utilization refreshed for allocation {allocation.id}: "
            f"utilized={allocation.utilized_amount}, remaining={allocation.remaining_amount}, "
            f"pct={allocation.utilization_pct}"
        )
        return lines
