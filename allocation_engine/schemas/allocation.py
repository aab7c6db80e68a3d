"""
Pydantic schemas for budget allocations.

This module defines the request and response schemas for allocation-related
API endpoints using Pydantic models.
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from allocation_engine.models.allocation import (
    AllocationDimension,
    AllocationMethod,
    AllocationStatus,
    PeriodType,
)


class AllocationBase(BaseModel):
    """Base schema for allocation data."""

    name: str
    description: Optional[str] = None
    allocation_method: AllocationMethod = AllocationMethod.TOP_DOWN
    dimension: AllocationDimension = AllocationDimension.CUSTOMER
    budget_id: Optional[str] = None
    fiscal_year: Optional[int] = None
    period_type: PeriodType = PeriodType.ANNUAL
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None


class AllocationCreate(AllocationBase):
    """Schema for creating a new allocation.

    ``source_amount`` may be omitted when ``budget_id`` is given; it then
    defaults to the budget's amount.
    """

    source_amount: Optional[Decimal] = None


class AllocationUpdate(BaseModel):
    """Schema for updating an allocation. Status moves go through the status endpoint."""

    name: Optional[str] = None
    description: Optional[str] = None
    allocation_method: Optional[AllocationMethod] = None
    dimension: Optional[AllocationDimension] = None
    budget_id: Optional[str] = None
    source_amount: Optional[Decimal] = None
    fiscal_year: Optional[int] = None
    period_type: Optional[PeriodType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None


class AllocationLine(BaseModel):
    """Schema for allocation line response data."""

    id: UUID
    allocation_id: UUID
    line_number: int
    dimension_type: AllocationDimension
    dimension_id: Optional[str] = None
    dimension_name: str
    allocated_amount: Decimal
    allocated_pct: Decimal
    utilized_amount: Decimal
    committed_amount: Decimal
    remaining_amount: Decimal
    utilization_pct: Decimal
    prior_year_amount: Optional[Decimal] = None
    prior_year_growth_pct: Optional[Decimal] = None
    status: str
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AllocationLineUpdate(BaseModel):
    """Annotations that may be edited on an existing line."""

    notes: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(active|on_hold|closed)$")


class BudgetAllocation(AllocationBase):
    """Schema for allocation response data."""

    id: UUID
    currency: str
    source_amount: Decimal
    allocated_amount: Decimal
    utilized_amount: Decimal
    remaining_amount: Decimal
    utilization_pct: Decimal
    status: AllocationStatus
    locked: bool
    locked_by: Optional[str] = None
    locked_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    generation: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BudgetAllocationWithLines(BudgetAllocation):
    """Allocation together with its current line set."""

    lines: List[AllocationLine] = []

    @classmethod
    def from_allocation(cls, allocation, lines) -> "BudgetAllocationWithLines":
        """Build from an ORM allocation and its separately loaded lines."""
        header = BudgetAllocation.model_validate(allocation)
        return cls(
            **header.model_dump(),
            lines=[AllocationLine.model_validate(line) for line in lines],
        )


class EntityInput(BaseModel):
    """Caller-supplied distribution target."""

    id: Optional[str] = None
    name: str
    prior_year_amount: Optional[Decimal] = None


class DistributeRequest(BaseModel):
    """
    Distribution parameters.

    ``overrides`` maps entity id (or name) to a weight for ``weighted`` and
    ``top_down``, or to a requested amount for ``bottom_up``. When
    ``entities`` is omitted the targets are loaded from the entity service
    for the allocation's dimension, narrowed by ``entity_filter``.
    """

    overrides: Optional[Dict[str, Decimal]] = None
    entities: Optional[List[EntityInput]] = None
    entity_filter: Optional[Dict[str, Any]] = None


class StatusTransition(BaseModel):
    status: AllocationStatus


class AllocationFilter(BaseModel):
    """Filters accepted by the list operation."""

    status: Optional[AllocationStatus] = None
    allocation_method: Optional[AllocationMethod] = None
    dimension: Optional[AllocationDimension] = None
    budget_id: Optional[str] = None
    fiscal_year: Optional[int] = None
    locked: Optional[bool] = None
    search: Optional[str] = None


class AllocationSummary(BaseModel):
    """Aggregate figures across all allocations."""

    total: int
    locked: int
    by_status: Dict[str, int]
    total_source: Decimal
    total_allocated: Decimal
    total_utilized: Decimal
    total_remaining: Decimal
    avg_utilization: Decimal


class WaterfallBucket(BaseModel):
    """Allocations drawn from one source budget."""

    budget_id: str
    budget_name: str
    total_budget: Decimal
    total_spend: Decimal
    total_allocated: Decimal
    total_line_allocated: Decimal
    total_utilized: Decimal
    total_remaining: Decimal
    allocations: List[BudgetAllocationWithLines] = []


class OptionItem(BaseModel):
    value: str
    label: str


class AllocationOptions(BaseModel):
    """Enumerations for populating allocation forms."""

    allocation_methods: List[OptionItem]
    dimensions: List[OptionItem]
    period_types: List[OptionItem]
    statuses: List[OptionItem]
