"""
Tests for the budget allocation API endpoints.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

BASE = "/api/budget-allocations"


async def create(client: AsyncClient, **overrides) -> dict:
    payload = {
        "name": "Channel Plan",
        "source_amount": "1000.00",
        "allocation_method": "proportional",
        "dimension": "customer",
    }
    payload.update(overrides)
    response = await client.post(f"{BASE}/", json=payload, headers={"X-User": "planner"})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health_check(async_client: AsyncClient):
    response = await async_client.get("/api/health/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "cache": "disabled"}


@pytest.mark.asyncio
async def test_options_lists_methods_and_dimensions(async_client: AsyncClient):
    response = await async_client.get(f"{BASE}/options")

    assert response.status_code == 200
    data = response.json()
    assert [m["value"] for m in data["allocation_methods"]] == [
        "top_down", "bottom_up", "equal_split", "proportional", "weighted"
    ]
    assert data["allocation_methods"][0]["label"] == "Top-Down (Waterfall)"
    assert {"value": "customer", "label": "By Customer"} in data["dimensions"]


@pytest.mark.asyncio
async def test_create_and_get_allocation(async_client: AsyncClient):
    created = await create(async_client)

    assert created["status"] == "draft"
    assert created["locked"] is False
    assert created["created_by"] == "planner"
    assert Decimal(created["source_amount"]) == Decimal("1000.00")

    response = await async_client.get(f"{BASE}/{created['id']}")
    assert response.status_code == 200
    assert response.json()["lines"] == []


@pytest.mark.asyncio
async def test_create_with_blank_name_is_rejected(async_client: AsyncClient):
    response = await async_client.post(f"{BASE}/", json={"name": " ", "source_amount": "10"})

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_get_unknown_allocation_returns_404(async_client: AsyncClient):
    response = await async_client.get(f"{BASE}/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_distribute_returns_lines(async_client: AsyncClient):
    created = await create(async_client)

    response = await async_client.post(f"{BASE}/{created['id']}/distribute")

    assert response.status_code == 200, response.text
    data = response.json()
    assert [Decimal(line["allocated_amount"]) for line in data["lines"]] == [
        Decimal("100.00"), Decimal("300.00"), Decimal("600.00")
    ]
    assert Decimal(data["allocated_amount"]) == Decimal("1000.00")
    assert data["generation"] == 1

    lines = await async_client.get(f"{BASE}/{created['id']}/lines")
    assert [line["dimension_name"] for line in lines.json()] == ["Acme", "Globex", "Initech"]


@pytest.mark.asyncio
async def test_distribute_with_weights(async_client: AsyncClient):
    created = await create(async_client, allocation_method="weighted")

    response = await async_client.post(
        f"{BASE}/{created['id']}/distribute",
        json={"overrides": {"C1": "1", "C2": "1", "C3": "2"}},
    )

    assert response.status_code == 200, response.text
    assert [Decimal(line["allocated_amount"]) for line in response.json()["lines"]] == [
        Decimal("250.00"), Decimal("250.00"), Decimal("500.00")
    ]


@pytest.mark.asyncio
async def test_distribute_with_zero_weights_returns_400(async_client: AsyncClient):
    created = await create(async_client, allocation_method="weighted")

    response = await async_client.post(
        f"{BASE}/{created['id']}/distribute", json={"overrides": {"C1": "0"}}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "weight_sum_zero"


@pytest.mark.asyncio
async def test_locked_allocation_rejects_distribution(async_client: AsyncClient):
    created = await create(async_client)
    lock = await async_client.post(f"{BASE}/{created['id']}/lock", headers={"X-User": "controller"})
    assert lock.status_code == 200
    assert lock.json()["locked_by"] == "controller"

    response = await async_client.post(f"{BASE}/{created['id']}/distribute")

    assert response.status_code == 423
    assert response.json()["error"] == "allocation_locked"

    unlock = await async_client.post(f"{BASE}/{created['id']}/unlock")
    assert unlock.status_code == 200
    assert unlock.json()["locked"] is False
    assert unlock.json()["locked_by"] is None


@pytest.mark.asyncio
async def test_update_allocation(async_client: AsyncClient):
    created = await create(async_client)

    response = await async_client.put(
        f"{BASE}/{created['id']}", json={"name": "Renamed", "notes": "Revised"}
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["notes"] == "Revised"


@pytest.mark.asyncio
async def test_status_transitions(async_client: AsyncClient):
    created = await create(async_client)
    url = f"{BASE}/{created['id']}/status"

    submitted = await async_client.post(url, json={"status": "pending_approval"})
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "pending_approval"

    invalid = await async_client.post(url, json={"status": "active"})
    assert invalid.status_code == 409
    assert invalid.json()["details"]["allowed"] == ["approved", "archived", "draft"]


@pytest.mark.asyncio
async def test_refresh_utilization(async_client: AsyncClient, ledger_service):
    created = await create(async_client)
    await async_client.post(f"{BASE}/{created['id']}/distribute")
    ledger_service.set("Initech", "300.00", "25.00")

    response = await async_client.post(f"{BASE}/{created['id']}/refresh-utilization")

    assert response.status_code == 200, response.text
    data = response.json()
    assert Decimal(data["utilized_amount"]) == Decimal("300.00")
    assert Decimal(data["remaining_amount"]) == Decimal("700.00")
    assert Decimal(data["utilization_pct"]) == Decimal("30.00")
    assert Decimal(data["lines"][2]["committed_amount"]) == Decimal("25.00")


@pytest.mark.asyncio
async def test_refresh_with_ledger_down_returns_503(async_client: AsyncClient, ledger_service):
    created = await create(async_client)
    await async_client.post(f"{BASE}/{created['id']}/distribute")
    ledger_service.failing.add("Acme")

    response = await async_client.post(f"{BASE}/{created['id']}/refresh-utilization")

    assert response.status_code == 503
    assert response.json()["error"] == "ledger_unavailable"


@pytest.mark.asyncio
async def test_update_line_notes(async_client: AsyncClient):
    created = await create(async_client)
    distributed = await async_client.post(f"{BASE}/{created['id']}/distribute")
    line_id = distributed.json()["lines"][0]["id"]

    response = await async_client.put(
        f"{BASE}/{created['id']}/lines/{line_id}", json={"notes": "Key account"}
    )

    assert response.status_code == 200
    assert response.json()["notes"] == "Key account"


@pytest.mark.asyncio
async def test_list_allocations_with_filters(async_client: AsyncClient):
    await create(async_client, name="North")
    await create(async_client, name="South", dimension="channel")

    response = await async_client.get(f"{BASE}/", params={"dimension": "channel"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "South"


@pytest.mark.asyncio
async def test_summary_and_waterfall(async_client: AsyncClient):
    created = await create(async_client, budget_id="B-100")
    await async_client.post(f"{BASE}/{created['id']}/distribute")
    await create(async_client, name="Unassigned", source_amount="50.00")

    summary = await async_client.get(f"{BASE}/summary")
    assert summary.status_code == 200
    assert summary.json()["total"] == 2
    assert Decimal(summary.json()["total_source"]) == Decimal("1050.00")

    waterfall = await async_client.get(f"{BASE}/waterfall")
    assert waterfall.status_code == 200
    buckets = waterfall.json()
    assert len(buckets) == 1
    assert buckets[0]["budget_name"] == "FY26 Trade Spend"
    assert len(buckets[0]["allocations"][0]["lines"]) == 3


@pytest.mark.asyncio
async def test_delete_allocation(async_client: AsyncClient):
    created = await create(async_client)

    response = await async_client.delete(f"{BASE}/{created['id']}")
    assert response.status_code == 204

    response = await async_client.get(f"{BASE}/{created['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_with_oversized_amount_returns_422(async_client: AsyncClient):
    response = await async_client.post(f"{BASE}/", json={"name": "Huge", "source_amount": "1e30"})

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_distribute_with_oversized_request_returns_422(async_client: AsyncClient):
    created = await create(async_client, allocation_method="bottom_up")

    response = await async_client.post(
        f"{BASE}/{created['id']}/distribute", json={"overrides": {"C1": "1e30"}}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["metadata", "lines", "no_such_field"])
async def test_list_rejects_sorting_by_non_columns(async_client: AsyncClient, field):
    response = await async_client.get(f"{BASE}/", params={"sort_by": field})

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_list_sorts_by_column(async_client: AsyncClient):
    await create(async_client, name="Beta")
    await create(async_client, name="Alpha")

    response = await async_client.get(f"{BASE}/", params={"sort_by": "name", "sort_order": "asc"})

    assert response.status_code == 200
    assert [item["name"] for item in response.json()["items"]] == ["Alpha", "Beta"]


@pytest.mark.asyncio
async def test_locked_allocation_is_reported_before_body_validation(async_client: AsyncClient):
    created = await create(async_client)
    await async_client.post(f"{BASE}/{created['id']}/lock")

    update = await async_client.put(f"{BASE}/{created['id']}", json={"source_amount": "lots"})
    distribute = await async_client.post(
        f"{BASE}/{created['id']}/distribute", json={"overrides": "not-a-mapping"}
    )
    transition = await async_client.post(f"{BASE}/{created['id']}/status", json={"status": "bogus"})

    for response in (update, distribute, transition):
        assert response.status_code == 423
        assert response.json()["error"] == "allocation_locked"


@pytest.mark.asyncio
async def test_invalid_body_on_unlocked_allocation_is_still_422(async_client: AsyncClient):
    created = await create(async_client)

    response = await async_client.put(f"{BASE}/{created['id']}", json={"source_amount": "lots"})

    assert response.status_code == 422
