"""
Models package initialization.

This module imports all models to ensure they are registered with SQLAlchemy.
"""

from allocation_engine.models.base import Base

from allocation_engine.models.allocation import (
    AllocationDimension,
    AllocationLine,
    AllocationMethod,
    AllocationStatus,
    BudgetAllocation,
    PeriodType,
)
from allocation_engine.models.audit import AuditLog


__all__ = [
    "Base",
    "BudgetAllocation",
    "AllocationLine",
    "AllocationMethod",
    "AllocationDimension",
    "AllocationStatus",
    "PeriodType",
    "AuditLog",
]
