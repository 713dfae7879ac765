# tests/api/test_orders_api.py
from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from tests.helpers.bakery import BAKE_DAY


async def _slot(client: httpx.AsyncClient, total: int = 10) -> dict:
    resp = await client.post(
        "/bake-slots",
        json={"slot_date": BAKE_DAY.isoformat(), "location_name": "Farmers Market", "total_capacity": total},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _order(client: httpx.AsyncClient, slot_id: int, lines: list[tuple[str, int]], **extra) -> dict:
    body = {
        "bake_slot_id": slot_id,
        "customer_name": extra.pop("customer_name", "Ada Baker"),
        "lines": [{"flavor_id": f, "flavor_name": f.title(), "quantity": q, "unit_price": "9.00"} for f, q in lines],
        **extra,
    }
    resp = await client.post("/orders", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _capacity(client: httpx.AsyncClient, slot_id: int) -> dict:
    resp = await client.get(f"/bake-slots/{slot_id}/capacity")
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_submit_order_commits_capacity(client: httpx.AsyncClient):
    slot = await _slot(client, total=10)
    order = await _order(client, slot["id"], [("classic", 3), ("rye", 1)])

    assert order["status"] == "submitted"
    assert order["order_no"].startswith("ORD-")
    assert [ln["flavor_id"] for ln in order["lines"]] == ["classic", "rye"]
    assert order["items_readable"] is True
    assert Decimal(order["total_amount"]) == Decimal("36")

    cap = await _capacity(client, slot["id"])
    assert (cap["committed"], cap["remaining"], cap["overbooked"]) == (4, 6, False)


@pytest.mark.asyncio
async def test_full_slot_refuses_public_orders_but_staff_can_overbook(client: httpx.AsyncClient):
    slot = await _slot(client, total=3)
    await _order(client, slot["id"], [("classic", 3)])

    resp = await client.post(
        "/orders",
        json={"bake_slot_id": slot["id"], "customer_name": "Late", "lines": [{"flavor_id": "rye", "quantity": 1}]},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CAPACITY_UNAVAILABLE"

    await _order(client, slot["id"], [("rye", 1)], customer_name="Staff Friend", override_capacity=True)
    cap = await _capacity(client, slot["id"])
    assert cap["committed"] == 4
    assert cap["overbooked"] is True


@pytest.mark.asyncio
async def test_closed_slot_refuses_orders(client: httpx.AsyncClient):
    slot = await _slot(client)
    resp = await client.post(f"/bake-slots/{slot['id']}/open", json={"is_open": False})
    assert resp.status_code == 200
    assert resp.json()["manually_closed_by"] == "Hanna"

    resp = await client.post(
        "/orders",
        json={"bake_slot_id": slot["id"], "customer_name": "Ada", "lines": [{"flavor_id": "rye", "quantity": 1}]},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cancel_and_uncancel_over_http(client: httpx.AsyncClient):
    slot = await _slot(client, total=20)
    await _order(client, slot["id"], [("classic", 6)], customer_name="Filler")
    order = await _order(client, slot["id"], [("rye", 4)])
    assert (await _capacity(client, slot["id"]))["committed"] == 10

    resp = await client.post(f"/orders/{order['id']}/status", json={"status": "canceled"})
    assert resp.status_code == 200
    assert resp.json() == {
        "order_id": order["id"],
        "before": "submitted",
        "after": "canceled",
        "capacity_delta": -4,
        "changed": True,
    }
    assert (await _capacity(client, slot["id"]))["committed"] == 6

    resp = await client.post(f"/orders/{order['id']}/status", json={"status": "confirmed"})
    assert resp.status_code == 200
    assert (await _capacity(client, slot["id"]))["committed"] == 10


@pytest.mark.asyncio
async def test_guarded_and_invalid_statuses_are_400(client: httpx.AsyncClient):
    slot = await _slot(client)
    order = await _order(client, slot["id"], [("classic", 1)])

    resp = await client.post(f"/orders/{order['id']}/status", json={"status": "produced"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "STATUS_NOT_ALLOWED"

    resp = await client.post(f"/orders/{order['id']}/status", json={"status": "burnt"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_FAILED"

    resp = await client.get(f"/orders/{order['id']}")
    assert resp.json()["status"] == "submitted"


@pytest.mark.asyncio
async def test_bulk_status_reports_capacity_changes(client: httpx.AsyncClient):
    slot = await _slot(client, total=50)
    ids = [(await _order(client, slot["id"], [("classic", q)], customer_name=f"C{q}"))["id"] for q in (1, 2, 3, 4, 5)]
    for oid in ids[:2]:
        await client.post(f"/orders/{oid}/status", json={"status": "canceled"})

    resp = await client.post("/orders/bulk-status", json={"order_ids": ids, "status": "canceled"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["capacity_changed"] == 3
    assert len(body["changes"]) == 5
    assert (await _capacity(client, slot["id"]))["committed"] == 0


@pytest.mark.asyncio
async def test_bulk_status_with_unknown_order_changes_nothing(client: httpx.AsyncClient):
    slot = await _slot(client, total=50)
    order = await _order(client, slot["id"], [("classic", 2)])

    resp = await client.post("/orders/bulk-status", json={"order_ids": [order["id"], 777], "status": "canceled"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"

    assert (await client.get(f"/orders/{order['id']}")).json()["status"] == "submitted"
    assert (await _capacity(client, slot["id"]))["committed"] == 2


@pytest.mark.asyncio
async def test_adjust_amount_and_recount(client: httpx.AsyncClient):
    slot = await _slot(client)
    order = await _order(client, slot["id"], [("classic", 2)])

    resp = await client.post(f"/orders/{order['id']}/adjust", json={"amount": "12.00", "reason": ""})
    assert resp.status_code == 400

    resp = await client.post(f"/orders/{order['id']}/adjust", json={"amount": "12.00", "reason": "bulk discount"})
    assert resp.status_code == 200
    assert Decimal(resp.json()["total_amount"]) == Decimal("12.00")
    assert resp.json()["adjustment_reason"] == "bulk discount"

    resp = await client.post(f"/bake-slots/{slot['id']}/recount")
    assert resp.status_code == 200
    assert resp.json() == {"slot_id": slot["id"], "before": 2, "after": 2, "drift": 0}


@pytest.mark.asyncio
async def test_list_orders_and_slots(client: httpx.AsyncClient):
    slot = await _slot(client)
    a = await _order(client, slot["id"], [("classic", 1)])
    b = await _order(client, slot["id"], [("rye", 1)])
    await client.post(f"/orders/{a['id']}/status", json={"status": "canceled"})

    resp = await client.get("/orders", params={"slot_id": slot["id"], "status": "submitted"})
    assert [o["id"] for o in resp.json()] == [b["id"]]

    resp = await client.get("/bake-slots", params={"date": BAKE_DAY.isoformat()})
    assert [s["id"] for s in resp.json()] == [slot["id"]]

    resp = await client.get("/orders/999")
    assert resp.status_code == 404
    assert resp.json() == {"error": {"code": "NOT_FOUND", "message": "order not found: id=999"}}


@pytest.mark.asyncio
async def test_health_and_metrics(client: httpx.AsyncClient):
    assert (await client.get("/healthz")).json() == {"status": "ok"}

    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text


@pytest.mark.asyncio
async def test_patch_slot_capacity_below_committed(client: httpx.AsyncClient):
    slot = await _slot(client, total=10)
    await _order(client, slot["id"], [("classic", 6)])

    resp = await client.patch(f"/bake-slots/{slot['id']}", json={"total_capacity": 4})
    assert resp.status_code == 200, resp.text
    assert (resp.json()["total_capacity"], resp.json()["current_orders"]) == (4, 6)

    cap = await _capacity(client, slot["id"])
    assert (cap["committed"], cap["remaining"], cap["overbooked"]) == (6, 0, True)

    resp = await client.patch(f"/bake-slots/{slot['id']}", json={"cutoff_at": "2026-11-06T18:00:00Z"})
    assert resp.json()["cutoff_at"] is not None
    resp = await client.patch(f"/bake-slots/{slot['id']}", json={"cutoff_at": None})
    assert resp.json()["cutoff_at"] is None

    resp = await client.patch(f"/bake-slots/{slot['id']}", json={"total_capacity": -3})
    assert resp.status_code == 422
    resp = await client.patch("/bake-slots/999", json={"total_capacity": 3})
    assert resp.status_code == 404
