"""
Audit log model for tracking allocation changes.

This module defines the SQLAlchemy model for audit logs, which record
every mutation of an allocation for compliance review.
"""

from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func
import uuid
from allocation_engine.models.base import Base


class AuditLog(Base):
    """
    Audit log model tracking system actions.

    Records changes to allocations and their line sets together with the
    actor and client that requested them.
    """

    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    actor = Column(String(100), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # CREATE, DISTRIBUTE, LOCK, ...
    resource_type = Column(String(50), nullable=False)  # BUDGET_ALLOCATION, ...
    resource_id = Column(String(50), nullable=True, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv4/IPv6
    user_agent = Column(String(255), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        """String representation of the AuditLog model."""
        return (
            f"<AuditLog(id={self.id}, action='{self.action}', "
            f"resource_type='{self.resource_type}', actor={self.actor})>"
        )
