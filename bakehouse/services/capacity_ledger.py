# bakehouse/services/capacity_ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.bake_slot import BakeSlot
from bakehouse.models.enums import COUNTS_TOWARD_CAPACITY
from bakehouse.models.order import Order
from bakehouse.obs.metrics import capacity_floor_hits_total
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import NotFound, ValidationFailed
from bakehouse.services.order_items import total_quantity

UTC = timezone.utc
logger = logging.getLogger("bakehouse.capacity")


@dataclass(frozen=True)
class SlotCapacity:
    slot_id: int
    total_capacity: int
    committed: int
    remaining: int
    is_open: bool

    @property
    def overbooked(self) -> bool:
        return self.committed > self.total_capacity


@dataclass(frozen=True)
class RecountResult:
    slot_id: int
    before: int
    after: int

    @property
    def drift(self) -> int:
        return self.before - self.after


async def get_slot(
    session: AsyncSession,
    slot_id: int,
    *,
    for_update: bool = False,
) -> BakeSlot:
    stmt = select(BakeSlot).where(BakeSlot.id == slot_id)
    if for_update:
        stmt = stmt.with_for_update()
    slot = (await session.execute(stmt)).scalars().first()
    if slot is None:
        raise NotFound(f"bake slot not found: id={slot_id}")
    return slot


async def apply_delta(session: AsyncSession, slot_id: int, unit_delta: int) -> BakeSlot:
    """
    Add unit_delta to the slot's committed counter.

    - increments are never clamped (overbooking is allowed)
    - decrements floor at 0 to tolerate historical drift
    - missing slot -> NotFound, propagated to the caller's transaction

    Only order lifecycle transitions call this; they also count the delta
    (capacity_delta_total) once their unit of work is through.
    """
    slot = await get_slot(session, slot_id, for_update=True)
    before = int(slot.current_orders or 0)
    after = before + int(unit_delta)

    if after < 0:
        logger.warning(
            "capacity decrement floored at 0: slot_id=%s before=%s delta=%s",
            slot_id,
            before,
            unit_delta,
        )
        capacity_floor_hits_total.inc()
        after = 0

    slot.current_orders = after
    await session.flush()

    logger.debug("capacity delta: slot_id=%s %s -> %s (delta=%s)", slot_id, before, after, unit_delta)
    return slot


def _capacity_of(slot: BakeSlot) -> SlotCapacity:
    total = int(slot.total_capacity or 0)
    committed = int(slot.current_orders or 0)
    return SlotCapacity(
        slot_id=slot.id,
        total_capacity=total,
        committed=committed,
        remaining=max(0, total - committed),
        is_open=bool(slot.is_open),
    )


async def get_open_capacity(session: AsyncSession, slot_id: int) -> SlotCapacity:
    slot = await get_slot(session, slot_id)
    return _capacity_of(slot)


async def create_slot(
    session: AsyncSession,
    *,
    slot_date: date,
    location_name: str,
    total_capacity: int,
    cutoff_at: Optional[datetime] = None,
    actor: Optional[ActorContext] = None,
) -> BakeSlot:
    if not location_name or not location_name.strip():
        raise ValidationFailed("bake slot needs a location_name")
    if int(total_capacity) < 0:
        raise ValidationFailed(f"total_capacity must be >= 0: {total_capacity}")

    slot = BakeSlot(
        slot_date=slot_date,
        location_name=location_name.strip(),
        total_capacity=int(total_capacity),
        current_orders=0,
        cutoff_at=cutoff_at,
        is_open=True,
    )
    session.add(slot)
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="SLOT",
        event="SLOT_CREATED",
        ref=str(slot.id),
        actor=actor,
        meta={
            "slot_date": slot_date.isoformat(),
            "location_name": slot.location_name,
            "total_capacity": slot.total_capacity,
        },
    )
    return slot


async def list_slots(session: AsyncSession, *, slot_date: Optional[date] = None) -> list[BakeSlot]:
    stmt = select(BakeSlot).order_by(BakeSlot.slot_date.asc(), BakeSlot.location_name.asc(), BakeSlot.id.asc())
    if slot_date is not None:
        stmt = stmt.where(BakeSlot.slot_date == slot_date)
    return list((await session.execute(stmt)).scalars())


async def update_slot(
    session: AsyncSession,
    slot_id: int,
    *,
    actor: ActorContext,
    total_capacity: Optional[int] = None,
    cutoff_at: Optional[datetime] = None,
    clear_cutoff: bool = False,
    location_name: Optional[str] = None,
) -> BakeSlot:
    """
    Edit a slot's capacity, cutoff or location.

    current_orders is never touched: lowering total_capacity below what is
    already committed leaves the slot overbooked, it does not cancel orders.
    """
    slot = await get_slot(session, slot_id, for_update=True)

    changes: dict[str, list] = {}
    if total_capacity is not None:
        if int(total_capacity) < 0:
            raise ValidationFailed(f"total_capacity must be >= 0: {total_capacity}")
        if int(total_capacity) != slot.total_capacity:
            changes["total_capacity"] = [slot.total_capacity, int(total_capacity)]
            slot.total_capacity = int(total_capacity)
    if location_name is not None:
        if not location_name.strip():
            raise ValidationFailed("bake slot needs a location_name")
        if location_name.strip() != slot.location_name:
            changes["location_name"] = [slot.location_name, location_name.strip()]
            slot.location_name = location_name.strip()
    if clear_cutoff or cutoff_at is not None:
        new_cutoff = None if clear_cutoff else cutoff_at
        if new_cutoff != slot.cutoff_at:
            changes["cutoff_at"] = [
                slot.cutoff_at.isoformat() if slot.cutoff_at else None,
                new_cutoff.isoformat() if new_cutoff else None,
            ]
            slot.cutoff_at = new_cutoff

    if not changes:
        return slot
    await session.flush()

    if "total_capacity" in changes and slot.current_orders > slot.total_capacity:
        logger.warning(
            "slot capacity lowered below committed: slot_id=%s committed=%s total=%s",
            slot.id,
            slot.current_orders,
            slot.total_capacity,
        )
    await AuditEventWriter.write(
        session,
        category="SLOT",
        event="SLOT_UPDATED",
        ref=str(slot.id),
        actor=actor,
        meta={"changes": changes, "committed": slot.current_orders},
    )
    return slot


async def set_slot_open(
    session: AsyncSession,
    slot_id: int,
    *,
    is_open: bool,
    actor: ActorContext,
) -> BakeSlot:
    """
    Manual open/close switch. Independent of the committed counter: a full
    slot stays open until someone closes it, and closing never touches orders.
    """
    slot = await get_slot(session, slot_id, for_update=True)
    if bool(slot.is_open) == bool(is_open):
        return slot

    slot.is_open = bool(is_open)
    if is_open:
        slot.manually_closed_by = None
        slot.manually_closed_at = None
    else:
        slot.manually_closed_by = actor.label
        slot.manually_closed_at = datetime.now(UTC)
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="SLOT",
        event="SLOT_OPENED" if is_open else "SLOT_CLOSED",
        ref=str(slot.id),
        actor=actor,
        meta={"committed": slot.current_orders, "total_capacity": slot.total_capacity},
    )
    return slot


async def committed_from_orders(session: AsyncSession, slot_id: int) -> int:
    """Sum of unit quantities of the slot's orders whose status counts."""
    counting = [s for s, counts in COUNTS_TOWARD_CAPACITY.items() if counts]
    rows = (
        await session.execute(
            select(Order.order_no, Order.items).where(
                Order.bake_slot_id == slot_id,
                Order.status.in_(counting),
            )
        )
    ).all()
    return sum(total_quantity(items, ref=order_no) for order_no, items in rows)


async def recount_committed(
    session: AsyncSession,
    slot_id: int,
    *,
    actor: ActorContext,
) -> RecountResult:
    """
    Maintenance: rebuild the committed counter from the orders that back it
    and report the drift that was corrected.
    """
    slot = await get_slot(session, slot_id, for_update=True)
    before = int(slot.current_orders or 0)
    after = await committed_from_orders(session, slot_id)

    if before != after:
        logger.warning("capacity drift corrected: slot_id=%s %s -> %s", slot_id, before, after)
        slot.current_orders = after
        await session.flush()

    await AuditEventWriter.write(
        session,
        category="SLOT",
        event="SLOT_RECOUNTED",
        ref=str(slot.id),
        actor=actor,
        meta={"before": before, "after": after},
    )
    return RecountResult(slot_id=slot_id, before=before, after=after)
