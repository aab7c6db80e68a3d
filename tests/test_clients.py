"""
Tests for the HTTP clients of the budget, entity and ledger services.
"""

from datetime import date
from decimal import Decimal

import httpx
import pytest

from allocation_engine.clients import (
    DateRange,
    HttpBudgetService,
    HttpEntityService,
    HttpLedgerService,
)
from allocation_engine.core.exceptions import (
    LedgerUnavailableError,
    NotFoundError,
    ReferenceDataError,
)


def transport(handler):
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_budget_client_reads_enveloped_camel_case_payload():
    def handler(request: httpx.Request):
        assert request.url.path == "/budgets/B-1"
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(
            200, json={"data": {"id": "B-1", "name": "Trade", "totalAmount": "500.50", "spentAmount": 20}}
        )

    client = HttpBudgetService("http://budgets", 5, api_token="secret", transport=transport(handler))
    budget = await client.get_budget("B-1")
    await client.aclose()

    assert budget.name == "Trade"
    assert budget.amount == Decimal("500.50")
    assert budget.spent_amount == Decimal("20")


@pytest.mark.asyncio
async def test_budget_client_maps_errors():
    def handler(request: httpx.Request):
        if request.url.path.endswith("missing"):
            return httpx.Response(404)
        return httpx.Response(500)

    client = HttpBudgetService("http://budgets", 5, transport=transport(handler))
    with pytest.raises(NotFoundError):
        await client.get_budget("missing")
    with pytest.raises(ReferenceDataError):
        await client.get_budget("broken")
    await client.aclose()


@pytest.mark.asyncio
async def test_entity_client_passes_filters_and_keeps_order():
    def handler(request: httpx.Request):
        assert request.url.path == "/entities/channel"
        assert request.url.params["region"] == "north"
        return httpx.Response(200, json=[
            {"id": 2, "name": "Online", "prior_year_amount": "10.00"},
            {"entityId": "1", "dimensionName": "Retail"},
        ])

    client = HttpEntityService("http://entities", 5, transport=transport(handler))
    entities = await client.list_entities("channel", {"region": "north"})
    await client.aclose()

    assert [(e.entity_id, e.name) for e in entities] == [("2", "Online"), ("1", "Retail")]
    assert entities[0].prior_year_amount == Decimal("10.00")
    assert entities[1].prior_year_amount is None


@pytest.mark.asyncio
async def test_ledger_client_sends_date_window():
    def handler(request: httpx.Request):
        params = request.url.params
        assert params["dimension_name"] == "Acme"
        assert params["start_date"] == "2026-01-01"
        assert params["end_date"] == "2026-03-31"
        return httpx.Response(200, json={"utilized_amount": "12.34", "committed_amount": "1"})

    client = HttpLedgerService("http://ledger", 5, transport=transport(handler))
    figures = await client.get_spend_and_commitments(
        "customer", "Acme", DateRange(date(2026, 1, 1), date(2026, 3, 31))
    )
    await client.aclose()

    assert figures.utilized == Decimal("12.34")
    assert figures.committed == Decimal("1")


@pytest.mark.asyncio
async def test_ledger_client_failure_is_unavailable():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("refused", request=request)

    client = HttpLedgerService("http://ledger", 5, transport=transport(handler))
    with pytest.raises(LedgerUnavailableError):
        await client.get_spend_and_commitments("customer", "Acme", DateRange())
    await client.aclose()
