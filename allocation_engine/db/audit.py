"""
Audit logging utilities.

Audit entries are added to the caller's session and committed together with
the change they describe, so a rolled-back mutation leaves no audit trace.
"""

from typing import Any, Dict, Optional
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from allocation_engine.core.config import settings
from allocation_engine.core.logging import logger
from allocation_engine.models.audit import AuditLog


def serialize_for_json(obj: Any) -> Any:
    """
    Convert an object to a JSON-serializable format.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation of the object
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (uuid.UUID, Decimal)):
        return str(obj)
    if isinstance(obj, dict):
        return {str(k): serialize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def record_action(
    db: AsyncSession,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    actor: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Stage an audit log entry in the current transaction.

    Args:
        db: Async database session
        action: Action performed
        resource_type: Type of resource affected
        resource_id: ID of the resource
        details: Additional details
        actor: Name of whoever requested the change
        ip_address: Client IP
        user_agent: User agent header

    Returns:
        The staged audit log, or None when audit logging is disabled
    """
    if not settings.enable_audit_logs:
        return None

    logger.debug(f"Staging audit log: {action} on {resource_type} {resource_id} by {actor}")

    audit_log = AuditLog(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=serialize_for_json(details) if details else None,
        ip_address=ip_address,
        user_agent=user_agent[:255] if user_agent else None,
    )
    db.add(audit_log)
    return audit_log
