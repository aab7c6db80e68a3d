"""
Dependencies for FastAPI endpoints.

This module provides request-scoped dependencies: pagination, client
information and the upstream reference and ledger services.
"""

from typing import Optional

from fastapi import Query, Request

from allocation_engine.clients import (
    BudgetReferenceService,
    EntityReferenceService,
    LedgerService,
    build_clients,
)
from allocation_engine.core.logging import logger
from allocation_engine.utils.pagination import PaginationParams

ACTOR_HEADER = "X-User"

_budget_service, _entity_service, _ledger_service = build_clients()


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(10, ge=1, le=100, description="Page size"),
    sort_by: str = Query("created_at", description="Field to sort by"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$", description="Sort order")
) -> PaginationParams:
    """
    Get pagination parameters from request query.

    Returns:
        PaginationParams object with extracted values
    """
    return PaginationParams(
        page=page,
        size=size,
        sort_by=sort_by,
        sort_order=sort_order
    )


async def get_request_client(request: Request):
    """Extract client information and the acting user from request."""
    actor: Optional[str] = request.headers.get(ACTOR_HEADER) or None
    return {
        "actor": actor.strip() if actor else None,
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent")
    }


def get_budget_service() -> BudgetReferenceService:
    return _budget_service


def get_entity_service() -> EntityReferenceService:
    return _entity_service


def get_ledger_service() -> LedgerService:
    return _ledger_service


async def close_service_clients() -> None:
    """Close the shared HTTP clients on shutdown."""
    for client in (_budget_service, _entity_service, _ledger_service):
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error closing service client: {e}")
