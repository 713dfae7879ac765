# bakehouse/services/order_lifecycle.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext, Capability
from bakehouse.models.enums import WORKFLOW_ONLY_STATUSES, OrderStatus, counts_toward_capacity
from bakehouse.models.order import Order
from bakehouse.obs.metrics import capacity_delta_total, order_status_transitions_total
from bakehouse.services import capacity_ledger
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import (
    CapacityUnavailable,
    NotFound,
    StatusNotAllowed,
    ValidationFailed,
)
from bakehouse.services.order_items import (
    OrderLineItem,
    dump_line_items,
    total_quantity,
    validate_new_lines,
)

UTC = timezone.utc
logger = logging.getLogger("bakehouse.orders")


@dataclass(frozen=True)
class StatusChange:
    """Outcome of one status write."""

    order_id: int
    before: OrderStatus
    after: OrderStatus
    capacity_delta: int

    @property
    def changed(self) -> bool:
        return self.before != self.after


def count_capacity_changes(changes: Iterable[StatusChange]) -> int:
    """Number of orders whose capacity contribution moved."""
    return sum(1 for c in changes if c.capacity_delta != 0)


def record_transitions(changes: Iterable[StatusChange]) -> None:
    """
    Count applied status writes. Called once the writes can no longer be
    rolled back by the caller's SAVEPOINT; counters cannot be undone.
    """
    for c in changes:
        if not c.changed:
            continue
        order_status_transitions_total.labels(c.before.value, c.after.value).inc()
        if c.capacity_delta:
            capacity_delta_total.labels("up" if c.capacity_delta > 0 else "down").inc()


def coerce_status(value: str | OrderStatus) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationFailed(f"invalid order status {value!r}; expected one of: {allowed}") from None


def gen_order_no() -> str:
    now = datetime.now(UTC)
    return f"ORD-{now.strftime('%y%m%d')}-{uuid4().hex[:6].upper()}"


# ------------------------------------------------------------------
# read
# ------------------------------------------------------------------


async def get_order(
    session: AsyncSession,
    order_id: int,
    *,
    for_update: bool = False,
) -> Order:
    stmt = select(Order).where(Order.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = (await session.execute(stmt)).scalars().first()
    if order is None:
        raise NotFound(f"order not found: id={order_id}")
    return order


async def list_orders(
    session: AsyncSession,
    *,
    slot_id: Optional[int] = None,
    status: Optional[OrderStatus] = None,
    limit: int = 200,
) -> list[Order]:
    stmt = select(Order).order_by(Order.id.desc()).limit(max(int(limit), 1))
    if slot_id is not None:
        stmt = stmt.where(Order.bake_slot_id == slot_id)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    return list((await session.execute(stmt)).scalars())


# ------------------------------------------------------------------
# status writes
# ------------------------------------------------------------------


def _check_allowed(target: OrderStatus, actor: ActorContext) -> None:
    if target in WORKFLOW_ONLY_STATUSES and not actor.can(Capability.PREP_SHEET_WORKFLOW):
        raise StatusNotAllowed(
            f"status {target.value!r} is set by the prep sheet workflow only; "
            "assign the order to a prep sheet or finalize the sheet instead"
        )


async def _apply_status(
    session: AsyncSession,
    order: Order,
    target: OrderStatus,
    actor: ActorContext,
) -> StatusChange:
    """
    Write one status and keep the slot counter in step:

      counts -> not counts   apply_delta(-qty)
      not counts -> counts   apply_delta(+qty)
      otherwise              no ledger call
    """
    before = OrderStatus(order.status)
    if before == target:
        return StatusChange(order.id, before, target, 0)

    counts_before = counts_toward_capacity(before)
    counts_after = counts_toward_capacity(target)

    delta = 0
    if counts_before != counts_after:
        qty = total_quantity(order.items, ref=order.order_no)
        delta = -qty if counts_before else qty
        await capacity_ledger.apply_delta(session, order.bake_slot_id, delta)

    order.status = target
    await session.flush()

    logger.info(
        "order status: id=%s %s -> %s (capacity %+d) by %s",
        order.id,
        before.value,
        target.value,
        delta,
        actor.label,
    )
    await AuditEventWriter.write(
        session,
        category="ORDER",
        event="ORDER_STATUS_CHANGED",
        ref=order.order_no,
        actor=actor,
        meta={
            "order_id": order.id,
            "from": before.value,
            "to": target.value,
            "capacity_delta": delta,
        },
    )
    return StatusChange(order.id, before, target, delta)


async def set_status(
    session: AsyncSession,
    order: Order,
    status: str | OrderStatus,
    *,
    actor: ActorContext,
    observe: bool = True,
) -> StatusChange:
    """
    Status write on an already loaded order (used by the prep sheet workflow).

    observe=False leaves counting to the caller (record_transitions), for
    writes made inside a SAVEPOINT that may still roll back.
    """
    target = coerce_status(status)
    _check_allowed(target, actor)
    change = await _apply_status(session, order, target, actor)
    if observe:
        record_transitions([change])
    return change


async def update_status(
    session: AsyncSession,
    order_id: int,
    status: str | OrderStatus,
    *,
    actor: ActorContext,
) -> StatusChange:
    target = coerce_status(status)
    _check_allowed(target, actor)
    order = await get_order(session, order_id, for_update=True)
    change = await _apply_status(session, order, target, actor)
    record_transitions([change])
    return change


async def bulk_update_status(
    session: AsyncSession,
    order_ids: Iterable[int],
    status: str | OrderStatus,
    *,
    actor: ActorContext,
) -> list[StatusChange]:
    """
    Same rule per order, all inside one SAVEPOINT: either every order is
    written (with its ledger delta) or none is.
    """
    target = coerce_status(status)
    _check_allowed(target, actor)

    ids = list(dict.fromkeys(int(i) for i in order_ids))
    if not ids:
        raise ValidationFailed("order_ids must not be empty")

    changes: list[StatusChange] = []
    async with session.begin_nested():
        rows = (
            await session.execute(
                select(Order).where(Order.id.in_(ids)).order_by(Order.id).with_for_update()
            )
        ).scalars()
        by_id = {o.id: o for o in rows}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise NotFound(f"orders not found: ids={missing}")

        for oid in ids:
            changes.append(await _apply_status(session, by_id[oid], target, actor))

    record_transitions(changes)
    return changes


# ------------------------------------------------------------------
# intake / financial adjustments
# ------------------------------------------------------------------


async def submit_order(
    session: AsyncSession,
    *,
    slot_id: int,
    lines: Sequence[OrderLineItem],
    customer_name: str,
    actor: ActorContext,
    customer_email: Optional[str] = None,
    total_amount: Optional[Decimal] = None,
    payment_method: Optional[str] = None,
    customer_notes: Optional[str] = None,
    enforce_capacity: bool = True,
) -> Order:
    """
    Create an order in `submitted` and commit its loaves to the slot.

    enforce_capacity=True (public intake): the slot must be open, before its
    cutoff and have room for the whole order. Staff entry passes False and
    may overbook.
    """
    lines = validate_new_lines(lines)
    if not customer_name or not customer_name.strip():
        raise ValidationFailed("customer_name is required")

    slot = await capacity_ledger.get_slot(session, slot_id, for_update=True)
    qty = sum(int(ln.quantity) for ln in lines)

    if enforce_capacity:
        if not slot.is_open:
            raise CapacityUnavailable(f"bake slot {slot.id} is closed")
        cutoff = slot.cutoff_at
        if cutoff is not None:
            if cutoff.tzinfo is None:
                cutoff = cutoff.replace(tzinfo=UTC)
            if cutoff < datetime.now(UTC):
                raise CapacityUnavailable(f"bake slot {slot.id} is past its order cutoff")
        if int(slot.current_orders or 0) + qty > int(slot.total_capacity or 0):
            raise CapacityUnavailable(
                f"not enough capacity on bake slot {slot.id}: "
                f"requested={qty}, remaining={max(0, slot.total_capacity - slot.current_orders)}"
            )

    if total_amount is None:
        total_amount = sum(
            (Decimal(ln.unit_price or 0) * int(ln.quantity) for ln in lines),
            Decimal("0"),
        )
    if Decimal(total_amount) < 0:
        raise ValidationFailed(f"total_amount must be >= 0: {total_amount}")

    order = Order(
        order_no=gen_order_no(),
        bake_slot_id=slot.id,
        customer_name=customer_name.strip(),
        customer_email=(customer_email or "").strip().lower() or None,
        items=dump_line_items(lines),
        status=OrderStatus.SUBMITTED,
        total_amount=Decimal(total_amount),
        payment_method=payment_method,
        payment_status="pending",
        customer_notes=customer_notes,
    )
    session.add(order)
    await session.flush()

    # a new order enters a counting status
    await capacity_ledger.apply_delta(session, slot.id, qty)
    capacity_delta_total.labels("up").inc()

    await AuditEventWriter.write(
        session,
        category="ORDER",
        event="ORDER_SUBMITTED",
        ref=order.order_no,
        actor=actor,
        meta={"order_id": order.id, "slot_id": slot.id, "quantity": qty},
    )
    return order


async def adjust_order_amount(
    session: AsyncSession,
    order_id: int,
    *,
    amount: Decimal,
    reason: str,
    actor: ActorContext,
) -> Order:
    """Staff price adjustment; a reason is mandatory."""
    if reason is None or not str(reason).strip():
        raise ValidationFailed("an adjustment reason is required")
    if amount is None:
        raise ValidationFailed("an adjustment amount is required")
    amount = Decimal(amount)
    if amount < 0:
        raise ValidationFailed(f"order amount must be >= 0: {amount}")

    order = await get_order(session, order_id, for_update=True)
    before = Decimal(order.total_amount or 0)
    order.total_amount = amount
    order.adjustment_reason = str(reason).strip()
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="ORDER",
        event="ORDER_AMOUNT_ADJUSTED",
        ref=order.order_no,
        actor=actor,
        meta={"order_id": order.id, "from": str(before), "to": str(amount), "reason": order.adjustment_reason},
    )
    return order
