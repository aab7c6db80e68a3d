"""
Schemas package initialization.

This module imports all schemas to make them available from a single import point.
"""

from allocation_engine.schemas.allocation import (
    AllocationBase,
    AllocationCreate,
    AllocationUpdate,
    AllocationLine,
    AllocationLineUpdate,
    BudgetAllocation,
    BudgetAllocationWithLines,
    EntityInput,
    DistributeRequest,
    StatusTransition,
    AllocationFilter,
    AllocationSummary,
    WaterfallBucket,
    OptionItem,
    AllocationOptions,
)

__all__ = [
    "AllocationBase",
    "AllocationCreate",
    "AllocationUpdate",
    "AllocationLine",
    "AllocationLineUpdate",
    "BudgetAllocation",
    "BudgetAllocationWithLines",
    "EntityInput",
    "DistributeRequest",
    "StatusTransition",
    "AllocationFilter",
    "AllocationSummary",
    "WaterfallBucket",
    "OptionItem",
    "AllocationOptions",
]
