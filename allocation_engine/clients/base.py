"""
Contracts of the services the allocation engine depends on.

The engine never owns budgets, entities or spend. It reads them through
these three interfaces; ``allocation_engine.clients.http`` implements them
over HTTP and tests substitute in-memory versions.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol


@dataclass(frozen=True)
class BudgetRecord:
    """A source budget as reported by the budget service."""

    budget_id: str
    name: str
    amount: Decimal
    spent_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class EntityRecord:
    """A distribution target (customer, channel, product, ...)."""

    entity_id: str
    name: str
    prior_year_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class SpendFigures:
    utilized: Decimal
    committed: Decimal


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None


class BudgetReferenceService(Protocol):
    async def get_budget(self, budget_id: str) -> BudgetRecord:
        """Return the budget or raise ``ReferenceDataError``/``NotFoundError``."""
        ...


class EntityReferenceService(Protocol):
    async def list_entities(
        self, dimension: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[EntityRecord]:
        """Return the entities of a dimension, in a stable order."""
        ...


class LedgerService(Protocol):
    async def get_spend_and_commitments(
        self, dimension_type: str, dimension_name: str, date_range: DateRange
    ) -> SpendFigures:
        """Return spend and open commitments for one entity in a date window."""
        ...
