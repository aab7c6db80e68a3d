"""
HTTP clients for the budget, entity and ledger services.

Upstream payloads arrive either bare or wrapped in a ``{"data": ...}``
envelope, with snake_case or camelCase keys. Both shapes are normalised here
so the services only ever see the records from ``clients.base``.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from allocation_engine.clients.base import (
    BudgetRecord,
    DateRange,
    EntityRecord,
    SpendFigures,
)
from allocation_engine.core.config import ServiceSettings, settings
from allocation_engine.core.exceptions import (
    LedgerUnavailableError,
    NotFoundError,
    ReferenceDataError,
)
from allocation_engine.core.logging import logger


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _pick(payload: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ReferenceDataError(f"Invalid numeric value from upstream service: {value!r}")


class ServiceClient:
    """Shared plumbing: one pooled ``httpx.AsyncClient`` per upstream service."""

    def __init__(self, base_url: str, timeout: float, api_token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return _unwrap(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()


class HttpBudgetService(ServiceClient):
    async def get_budget(self, budget_id: str) -> BudgetRecord:
        logger.debug(f"Fetching budget {budget_id}")
        try:
            payload = await self._get(f"/budgets/{budget_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(f"Budget not found: {budget_id}")
            logger.error(f"Budget service returned {e.response.status_code} for {budget_id}")
            raise ReferenceDataError(f"Budget service error for {budget_id}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Budget service unavailable: {e}")
            raise ReferenceDataError("Budget service unavailable") from e

        amount = _decimal(_pick(payload, "amount", "total_amount", "totalAmount"))
        if amount is None:
            raise ReferenceDataError(f"Budget {budget_id} has no amount")
        return BudgetRecord(
            budget_id=str(_pick(payload, "id", default=budget_id)),
            name=_pick(payload, "name", default=str(budget_id)),
            amount=amount,
            spent_amount=_decimal(_pick(payload, "spent_amount", "spentAmount", "spent")),
        )


class HttpEntityService(ServiceClient):
    async def list_entities(
        self, dimension: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[EntityRecord]:
        logger.debug(f"Listing {dimension} entities with filters={filters}")
        try:
            payload = await self._get(f"/entities/{dimension}", params=filters or None)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Entity service unavailable: {e}")
            raise ReferenceDataError(f"Could not load {dimension} entities") from e

        if not isinstance(payload, list):
            raise ReferenceDataError(f"Unexpected entity payload for {dimension}")

        return [
            EntityRecord(
                entity_id=str(_pick(item, "id", "entity_id", "entityId", default=_pick(item, "name"))),
                name=_pick(item, "name", "dimension_name", "dimensionName", default=""),
                prior_year_amount=_decimal(_pick(item, "prior_year_amount", "priorYearAmount")),
            )
            for item in payload
        ]


class HttpLedgerService(ServiceClient):
    async def get_spend_and_commitments(
        self, dimension_type: str, dimension_name: str, date_range: DateRange
    ) -> SpendFigures:
        params: Dict[str, Any] = {
            "dimension_type": dimension_type,
            "dimension_name": dimension_name,
        }
        if date_range.start:
            params["start_date"] = date_range.start.isoformat()
        if date_range.end:
            params["end_date"] = date_range.end.isoformat()

        try:
            payload = await self._get("/spend", params=params)
            return SpendFigures(
                utilized=_decimal(_pick(payload, "utilized", "utilized_amount", "utilizedAmount")) or Decimal("0"),
                committed=_decimal(_pick(payload, "committed", "committed_amount", "committedAmount")) or Decimal("0"),
            )
        except (httpx.HTTPError, ValueError, ReferenceDataError, AttributeError) as e:
            logger.error(f"Ledger lookup failed for {dimension_type}/{dimension_name}: {e}")
            raise LedgerUnavailableError(
                f"Ledger unavailable for {dimension_type} {dimension_name}"
            ) from e


def build_clients(service_settings: ServiceSettings = settings.services):
    """Create the three upstream clients from settings."""
    common = {
        "timeout": service_settings.timeout_seconds,
        "api_token": service_settings.api_token_str,
    }
    return (
        HttpBudgetService(service_settings.budget_service_url, **common),
        HttpEntityService(service_settings.entity_service_url, **common),
        HttpLedgerService(service_settings.ledger_service_url, **common),
    )
