# tests/services/test_order_lifecycle.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.models.audit_event import AuditEvent
from bakehouse.models.enums import OrderStatus
from bakehouse.models.order import Order
from bakehouse.services import capacity_ledger, order_lifecycle
from bakehouse.services.errors import (
    CapacityUnavailable,
    NotFound,
    StatusNotAllowed,
    ValidationFailed,
)
from bakehouse.services.order_items import OrderLineItem
from tests.helpers.bakery import (
    STAFF,
    WORKFLOW,
    committed,
    expected_committed,
    make_order,
    make_raw_order,
    make_slot,
)

UTC = timezone.utc


@pytest.mark.asyncio
async def test_cancel_then_uncancel_restores_capacity(session: AsyncSession):
    slot = await make_slot(session, total=20)
    await make_order(session, slot, [("classic", 6)], customer="Filler")
    order = await make_order(session, slot, [("classic", 3), ("rye", 1)])
    assert await committed(session, slot.id) == 10

    change = await order_lifecycle.update_status(session, order.id, "canceled", actor=STAFF)
    assert change.capacity_delta == -4
    assert await committed(session, slot.id) == 6

    change = await order_lifecycle.update_status(session, order.id, "submitted", actor=STAFF)
    assert change.capacity_delta == 4
    assert await committed(session, slot.id) == 10

    await order_lifecycle.update_status(session, order.id, OrderStatus.CANCELED, actor=STAFF)
    assert await committed(session, slot.id) == 6
    assert await committed(session, slot.id) == await expected_committed(session, slot.id)


@pytest.mark.asyncio
async def test_moves_within_counting_set_do_not_touch_the_ledger(session: AsyncSession):
    slot = await make_slot(session, total=20)
    order = await make_order(session, slot, [("olive", 2)])

    for st in ("confirmed", "ready", "picked_up"):
        change = await order_lifecycle.update_status(session, order.id, st, actor=STAFF)
        assert change.capacity_delta == 0

    # canceled -> no_show stays outside the counting set
    await order_lifecycle.update_status(session, order.id, "canceled", actor=STAFF)
    change = await order_lifecycle.update_status(session, order.id, "no_show", actor=STAFF)
    assert change.capacity_delta == 0

    assert await committed(session, slot.id) == 0 == await expected_committed(session, slot.id)


@pytest.mark.asyncio
async def test_same_status_is_a_no_op(session: AsyncSession):
    slot = await make_slot(session)
    order = await make_order(session, slot, [("classic", 2)])

    change = await order_lifecycle.update_status(session, order.id, "submitted", actor=STAFF)
    assert change.changed is False
    assert change.capacity_delta == 0

    events = (
        await session.execute(select(AuditEvent).where(AuditEvent.event == "ORDER_STATUS_CHANGED"))
    ).scalars().all()
    assert events == []


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["scheduled", "produced"])
async def test_workflow_statuses_are_guarded(session: AsyncSession, target: str):
    slot = await make_slot(session)
    order = await make_order(session, slot, [("classic", 2)])

    with pytest.raises(StatusNotAllowed):
        await order_lifecycle.update_status(session, order.id, target, actor=STAFF)

    with pytest.raises(StatusNotAllowed):
        await order_lifecycle.bulk_update_status(session, [order.id], target, actor=STAFF)

    # the workflow capability unlocks them
    change = await order_lifecycle.update_status(session, order.id, target, actor=WORKFLOW)
    assert change.after == OrderStatus(target)


@pytest.mark.asyncio
async def test_invalid_status_and_missing_order(session: AsyncSession):
    slot = await make_slot(session)
    order = await make_order(session, slot, [("classic", 2)])

    with pytest.raises(ValidationFailed):
        await order_lifecycle.update_status(session, order.id, "eaten", actor=STAFF)
    with pytest.raises(NotFound):
        await order_lifecycle.update_status(session, 4242, "canceled", actor=STAFF)


@pytest.mark.asyncio
async def test_unreadable_items_count_as_one_unit(session: AsyncSession):
    slot = await make_slot(session, total=10)
    legacy = await make_raw_order(session, slot, "<<garbage>>", order_no="ORD-LEGACY-9")
    await capacity_ledger.apply_delta(session, slot.id, 5)

    change = await order_lifecycle.update_status(session, legacy.id, "canceled", actor=STAFF)

    assert change.capacity_delta == -1
    assert await committed(session, slot.id) == 4


@pytest.mark.asyncio
async def test_negative_legacy_quantity_never_raises_committed_on_cancel(session: AsyncSession):
    slot = await make_slot(session, total=10)
    legacy = await make_raw_order(
        session, slot, '[{"flavorId": "rye", "quantity": -2}]', order_no="ORD-LEGACY-NEG"
    )
    await capacity_ledger.apply_delta(session, slot.id, 5)

    change = await order_lifecycle.update_status(session, legacy.id, "canceled", actor=STAFF)

    assert change.capacity_delta == -1
    assert await committed(session, slot.id) == 4


@pytest.mark.asyncio
async def test_bulk_cancel_only_counts_newly_canceled(session: AsyncSession):
    slot = await make_slot(session, total=50)
    live = [await make_order(session, slot, [("classic", q)], customer=f"C{q}") for q in (1, 2, 3)]
    gone = [
        await make_order(session, slot, [("rye", q)], customer=f"X{q}", status=OrderStatus.CANCELED)
        for q in (4, 5)
    ]
    assert await committed(session, slot.id) == 6

    changes = await order_lifecycle.bulk_update_status(
        session, [o.id for o in live + gone], "canceled", actor=STAFF
    )

    assert order_lifecycle.count_capacity_changes(changes) == 3
    assert sorted(c.capacity_delta for c in changes) == [-3, -2, -1, 0, 0]
    assert await committed(session, slot.id) == 0 == await expected_committed(session, slot.id)


@pytest.mark.asyncio
async def test_bulk_with_unknown_id_writes_nothing(session: AsyncSession):
    slot = await make_slot(session, total=50)
    a = await make_order(session, slot, [("classic", 2)])
    b = await make_order(session, slot, [("rye", 3)])
    await session.commit()

    with pytest.raises(NotFound):
        await order_lifecycle.bulk_update_status(session, [a.id, 9999, b.id], "canceled", actor=STAFF)

    statuses = (
        await session.execute(
            select(Order.status).where(Order.id.in_([a.id, b.id])).execution_options(populate_existing=True)
        )
    ).scalars().all()
    assert set(statuses) == {OrderStatus.SUBMITTED}
    assert await committed(session, slot.id) == 5


@pytest.mark.asyncio
async def test_bulk_failure_midway_rolls_back_every_order(session: AsyncSession, monkeypatch):
    slot = await make_slot(session, total=50)
    orders = [await make_order(session, slot, [("classic", q)], customer=f"C{q}") for q in (1, 2, 3)]
    await session.commit()
    order_ids = [o.id for o in orders]
    slot_id = slot.id
    assert await committed(session, slot.id) == 6

    real_apply_delta = capacity_ledger.apply_delta
    calls = []

    async def ledger_down_on_third(session_, sid, unit_delta):
        calls.append(unit_delta)
        if len(calls) == 3:
            raise RuntimeError("ledger unavailable")
        return await real_apply_delta(session_, sid, unit_delta)

    monkeypatch.setattr(capacity_ledger, "apply_delta", ledger_down_on_third)
    labels = {"from_status": "submitted", "to_status": "canceled"}
    transitions_before = REGISTRY.get_sample_value("order_status_transitions_total", labels) or 0.0

    with pytest.raises(RuntimeError):
        await order_lifecycle.bulk_update_status(session, order_ids, "canceled", actor=STAFF)

    assert calls == [-1, -2, -3]
    assert await committed(session, slot_id) == 6
    statuses = (
        await session.execute(
            select(Order.status)
            .where(Order.id.in_(order_ids))
            .execution_options(populate_existing=True)
        )
    ).scalars().all()
    assert statuses == [OrderStatus.SUBMITTED] * 3
    # nothing was applied, so nothing is counted
    assert (REGISTRY.get_sample_value("order_status_transitions_total", labels) or 0.0) == transitions_before

@pytest.mark.asyncio
async def test_bulk_rejects_empty_id_list(session: AsyncSession):
    with pytest.raises(ValidationFailed):
        await order_lifecycle.bulk_update_status(session, [], "canceled", actor=STAFF)


@pytest.mark.asyncio
async def test_submit_order_checks_slot_room(session: AsyncSession):
    slot = await make_slot(session, total=5)
    lines = [OrderLineItem(flavor_id="classic", flavor_name="Classic Sourdough", quantity=3, unit_price=Decimal("9"))]

    order = await order_lifecycle.submit_order(
        session, slot_id=slot.id, lines=lines, customer_name="Ada", actor=STAFF
    )
    assert order.status == OrderStatus.SUBMITTED
    assert order.total_amount == Decimal("27")
    assert await committed(session, slot.id) == 3

    with pytest.raises(CapacityUnavailable):
        await order_lifecycle.submit_order(
            session, slot_id=slot.id, lines=lines, customer_name="Bo", actor=STAFF
        )

    # staff override may overbook
    await order_lifecycle.submit_order(
        session, slot_id=slot.id, lines=lines, customer_name="Bo", actor=STAFF, enforce_capacity=False
    )
    assert await committed(session, slot.id) == 6


@pytest.mark.asyncio
async def test_submit_order_refused_on_closed_or_past_cutoff_slot(session: AsyncSession):
    lines = [OrderLineItem(flavor_id="rye", quantity=1)]

    closed = await make_slot(session, location="Closed Stand")
    await capacity_ledger.set_slot_open(session, closed.id, is_open=False, actor=STAFF)
    with pytest.raises(CapacityUnavailable):
        await order_lifecycle.submit_order(
            session, slot_id=closed.id, lines=lines, customer_name="Ada", actor=STAFF
        )

    late = await capacity_ledger.create_slot(
        session,
        slot_date=datetime.now(UTC).date(),
        location_name="Porch",
        total_capacity=10,
        cutoff_at=datetime.now(UTC) - timedelta(hours=1),
        actor=STAFF,
    )
    with pytest.raises(CapacityUnavailable):
        await order_lifecycle.submit_order(
            session, slot_id=late.id, lines=lines, customer_name="Ada", actor=STAFF
        )


@pytest.mark.asyncio
async def test_adjust_amount_requires_reason(session: AsyncSession):
    slot = await make_slot(session)
    order = await make_order(session, slot, [("classic", 1)])

    with pytest.raises(ValidationFailed):
        await order_lifecycle.adjust_order_amount(session, order.id, amount=Decimal("5"), reason=" ", actor=STAFF)
    with pytest.raises(ValidationFailed):
        await order_lifecycle.adjust_order_amount(
            session, order.id, amount=Decimal("-1"), reason="typo", actor=STAFF
        )

    adjusted = await order_lifecycle.adjust_order_amount(
        session, order.id, amount=Decimal("7.50"), reason="day-old discount", actor=STAFF
    )
    assert adjusted.total_amount == Decimal("7.50")
    assert adjusted.adjustment_reason == "day-old discount"
