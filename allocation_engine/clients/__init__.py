"""
Clients for the budget, entity and ledger services.
"""

from allocation_engine.clients.base import (
    BudgetRecord,
    BudgetReferenceService,
    DateRange,
    EntityRecord,
    EntityReferenceService,
    LedgerService,
    SpendFigures,
)
from allocation_engine.clients.http import (
    HttpBudgetService,
    HttpEntityService,
    HttpLedgerService,
    build_clients,
)

__all__ = [
    "BudgetRecord",
    "BudgetReferenceService",
    "DateRange",
    "EntityRecord",
    "EntityReferenceService",
    "LedgerService",
    "SpendFigures",
    "HttpBudgetService",
    "HttpEntityService",
    "HttpLedgerService",
    "build_clients",
]
