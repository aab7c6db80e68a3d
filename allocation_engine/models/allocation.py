"""
Budget allocation models.

This module defines the SQLAlchemy models for budget allocations and their
lines. An allocation distributes a source amount across entities of one
dimension; each line is one entity's share.
"""

from decimal import Decimal
from enum import Enum as PyEnum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from allocation_engine.models.base import Base


class AllocationMethod(str, PyEnum):
    """Strategy used to split a source amount across entities."""

    TOP_DOWN = "top_down"
    BOTTOM_UP = "bottom_up"
    EQUAL_SPLIT = "equal_split"
    PROPORTIONAL = "proportional"
    WEIGHTED = "weighted"


class AllocationDimension(str, PyEnum):
    """Category of entity an allocation is split across."""

    CUSTOMER = "customer"
    CHANNEL = "channel"
    PRODUCT = "product"
    CATEGORY = "category"
    REGION = "region"
    BRAND = "brand"


class PeriodType(str, PyEnum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"


class AllocationStatus(str, PyEnum):
    """Lifecycle status. ``LOCKED`` is accepted on read for older rows; the
    ``locked`` flag is the source of truth for locking."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ACTIVE = "active"
    LOCKED = "locked"
    ARCHIVED = "archived"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class BudgetAllocation(Base):
    """
    Budget allocation header.

    Holds the source pool, the distribution method and dimension, and the
    roll-up of its current lines. ``generation`` identifies the line set
    produced by the latest distribution.
    """

    __tablename__ = "budget_allocations"

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    allocation_method = Column(
        Enum(AllocationMethod, name="allocation_method", values_callable=_enum_values),
        nullable=False,
        default=AllocationMethod.TOP_DOWN,
    )
    dimension = Column(
        Enum(AllocationDimension, name="allocation_dimension", values_callable=_enum_values),
        nullable=False,
        default=AllocationDimension.CUSTOMER,
    )
    budget_id = Column(String(64), nullable=True, index=True)

    source_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    allocated_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    utilized_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    remaining_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    utilization_pct = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))

    fiscal_year = Column(Integer, nullable=True, index=True)
    period_type = Column(
        Enum(PeriodType, name="period_type", values_callable=_enum_values),
        nullable=False,
        default=PeriodType.ANNUAL,
    )
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    currency = Column(String(3), nullable=False, default="ZAR")

    status = Column(
        Enum(AllocationStatus, name="allocation_status", values_callable=_enum_values),
        nullable=False,
        default=AllocationStatus.DRAFT,
        index=True,
    )
    locked = Column(Boolean, nullable=False, default=False)
    locked_by = Column(String(100), nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    generation = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Set explicitly by structural mutations; lock and refresh leave it alone.
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Lines are read and replaced through AllocationLineStore only.
    lines = relationship(
        "AllocationLine",
        back_populates="allocation",
        lazy="raise",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """String representation of the BudgetAllocation model."""
        return (
            f"<BudgetAllocation(id={self.id}, "
            f"name='{self.name}', "
            f"method='{self.allocation_method}', "
            f"source_amount={self.source_amount})>"
        )


class AllocationLine(Base):
    """
    One entity's share of a budget allocation.

    Lines are created only by distribution, in bulk, under a new generation
    number. Utilization refresh updates the utilized, committed and
    remaining figures in place.
    """

    __tablename__ = "budget_allocation_lines"
    __table_args__ = (
        UniqueConstraint("allocation_id", "generation", "line_number", name="uq_allocation_line_number"),
    )

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    allocation_id = Column(
        Uuid,
        ForeignKey("budget_allocations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    generation = Column(Integer, nullable=False, default=0)
    line_number = Column(Integer, nullable=False)

    dimension_type = Column(
        Enum(AllocationDimension, name="allocation_dimension", values_callable=_enum_values),
        nullable=False,
    )
    dimension_id = Column(String(64), nullable=True)
    dimension_name = Column(String(200), nullable=False)

    allocated_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    allocated_pct = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))
    utilized_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    committed_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    remaining_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    utilization_pct = Column(Numeric(9, 2), nullable=False, default=Decimal("0.00"))
    prior_year_amount = Column(Numeric(15, 2), nullable=True)
    prior_year_growth_pct = Column(Numeric(9, 2), nullable=True)

    status = Column(String(20), nullable=False, default="active")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    allocation = relationship("BudgetAllocation", back_populates="lines", lazy="raise")

    def __repr__(self) -> str:
        """String representation of the AllocationLine model."""
        return (
            f"<AllocationLine(id={self.id}, "
            f"allocation_id={self.allocation_id}, "
            f"line_number={self.line_number}, "
            f"allocated_amount={self.allocated_amount})>"
        )
