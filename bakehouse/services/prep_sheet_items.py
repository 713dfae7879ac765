# bakehouse/services/prep_sheet_items.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext, Capability
from bakehouse.models.enums import ASSIGNABLE_STATUSES, OrderStatus
from bakehouse.models.prep_sheet import PrepSheet, PrepSheetItem
from bakehouse.services import flavor_catalog, order_lifecycle
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import NotFound, ValidationFailed
from bakehouse.services.order_items import parse_line_items
from bakehouse.services.prep_sheet_query import get_draft, get_item, get_with_items, order_is_on_a_sheet

logger = logging.getLogger("bakehouse.prep_sheet")


def workflow_actor(actor: ActorContext) -> ActorContext:
    """The workflow acts with the capability to write scheduled / produced."""
    return actor.granted(Capability.PREP_SHEET_WORKFLOW)


def _check_quantity(quantity: int, *, minimum: int = 1) -> int:
    try:
        q = int(quantity)
    except (TypeError, ValueError):
        raise ValidationFailed(f"quantity must be an integer: {quantity!r}") from None
    if q < minimum:
        raise ValidationFailed(f"quantity must be >= {minimum}: {quantity}")
    return q


async def _draft_of_item(session: AsyncSession, item_id: int) -> tuple[PrepSheet, PrepSheetItem]:
    item = await get_item(session, item_id)
    sheet = await get_draft(session, item.prep_sheet_id)
    for it in sheet.items:
        if it.id == item_id:
            return sheet, it
    raise NotFound(f"prep sheet item not found: id={item_id}")


# ------------------------------------------------------------------
# order-backed items
# ------------------------------------------------------------------


async def assign_order(
    session: AsyncSession,
    *,
    sheet_id: int,
    order_id: int,
    actor: ActorContext,
) -> PrepSheet:
    """
    Put an order on a draft sheet: one item per order line (planned =
    line quantity) and the order moves to `scheduled`.
    """
    sheet = await get_draft(session, sheet_id)
    order = await order_lifecycle.get_order(session, order_id, for_update=True)

    if OrderStatus(order.status) not in ASSIGNABLE_STATUSES:
        raise ValidationFailed(
            f"order {order.order_no} is {order.status.value}; only submitted/confirmed orders can be scheduled"
        )
    held_by = await order_is_on_a_sheet(session, order.id)
    if held_by is not None:
        raise ValidationFailed(f"order {order.order_no} is already on prep sheet {held_by}")

    parsed = parse_line_items(order.items)
    if not parsed.ok:
        raise ValidationFailed(f"order {order.order_no} has unreadable line items: {parsed.error}")
    if not parsed.lines:
        raise ValidationFailed(f"order {order.order_no} has no line items")

    for ln in parsed.lines:
        sheet.items.append(
            PrepSheetItem(
                order=order,
                order_id=order.id,
                flavor_id=ln.flavor_id,
                flavor_name=ln.flavor_name or ln.flavor_id,
                planned_quantity=int(ln.quantity),
            )
        )
    await session.flush()

    await order_lifecycle.set_status(session, order, OrderStatus.SCHEDULED, actor=workflow_actor(actor))

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="ORDER_ASSIGNED",
        ref=str(sheet.id),
        actor=actor,
        meta={"order_id": order.id, "order_no": order.order_no, "lines": len(parsed.lines)},
    )
    return await get_with_items(session, sheet.id)


async def unassign_order(
    session: AsyncSession,
    *,
    sheet_id: int,
    order_id: int,
    actor: ActorContext,
) -> PrepSheet:
    """Drop every item of the order from the draft and revert it to `submitted`."""
    sheet = await get_draft(session, sheet_id)
    mine = [it for it in sheet.items if it.order_id == order_id]
    if not mine:
        raise NotFound(f"order {order_id} is not on prep sheet {sheet.id}")

    order = await order_lifecycle.get_order(session, order_id, for_update=True)
    for it in mine:
        sheet.items.remove(it)
    await session.flush()

    await order_lifecycle.set_status(session, order, OrderStatus.SUBMITTED, actor=workflow_actor(actor))

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="ORDER_UNASSIGNED",
        ref=str(sheet.id),
        actor=actor,
        meta={"order_id": order.id, "order_no": order.order_no, "items_removed": len(mine)},
    )
    return await get_with_items(session, sheet.id)


# ------------------------------------------------------------------
# extras (no order)
# ------------------------------------------------------------------


async def add_extra(
    session: AsyncSession,
    *,
    sheet_id: int,
    flavor_id: str,
    quantity: int,
    actor: ActorContext,
) -> PrepSheet:
    qty = _check_quantity(quantity)
    sheet = await get_draft(session, sheet_id)
    flavor = await flavor_catalog.get_flavor(session, flavor_id)
    if not flavor.is_active:
        raise ValidationFailed(f"flavor {flavor.id} is inactive; reactivate it before baking extras")

    sheet.items.append(
        PrepSheetItem(
            order=None,
            order_id=None,
            flavor_id=flavor.id,
            flavor_name=flavor.name,
            planned_quantity=qty,
        )
    )
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="EXTRA_ADDED",
        ref=str(sheet.id),
        actor=actor,
        meta={"flavor_id": flavor.id, "quantity": qty},
    )
    return await get_with_items(session, sheet.id)


async def update_extra(
    session: AsyncSession,
    *,
    item_id: int,
    quantity: int,
    actor: ActorContext,
) -> PrepSheet:
    qty = _check_quantity(quantity)
    sheet, item = await _draft_of_item(session, item_id)
    if not item.is_extra:
        raise ValidationFailed(f"item {item_id} belongs to order {item.order_id}; unassign the order instead")

    before = item.planned_quantity
    item.planned_quantity = qty
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="EXTRA_UPDATED",
        ref=str(sheet.id),
        actor=actor,
        meta={"item_id": item.id, "from": before, "to": qty},
    )
    return await get_with_items(session, sheet.id)


async def remove_extra(
    session: AsyncSession,
    *,
    item_id: int,
    actor: ActorContext,
) -> PrepSheet:
    sheet, item = await _draft_of_item(session, item_id)
    if not item.is_extra:
        raise ValidationFailed(f"item {item_id} belongs to order {item.order_id}; unassign the order instead")

    sheet.items.remove(item)
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="EXTRA_REMOVED",
        ref=str(sheet.id),
        actor=actor,
        meta={"item_id": item_id, "flavor_id": item.flavor_id},
    )
    return await get_with_items(session, sheet.id)


async def set_actual_quantity(
    session: AsyncSession,
    *,
    item_id: int,
    quantity: Optional[int],
    actor: ActorContext,
) -> PrepSheet:
    """Record how many loaves were actually baked for an item (None clears it)."""
    qty = None if quantity is None else _check_quantity(quantity, minimum=0)
    sheet, item = await _draft_of_item(session, item_id)

    item.actual_quantity = qty
    await session.flush()
    logger.debug("actual quantity: sheet=%s item=%s -> %s", sheet.id, item.id, qty)
    return await get_with_items(session, sheet.id)
