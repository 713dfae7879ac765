# bakehouse/services/prep_sheet_query.py
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bakehouse.models.bake_slot import BakeSlot
from bakehouse.models.enums import ASSIGNABLE_STATUSES, PrepSheetStatus
from bakehouse.models.order import Order
from bakehouse.models.prep_sheet import PrepSheet, PrepSheetItem
from bakehouse.services.errors import NotFound, StateConflict


def display_key(item: PrepSheetItem) -> tuple:
    """Order-backed items first, then extras; by customer, flavor, id."""
    return (
        item.order_id is None,
        (item.customer_name or "").lower(),
        (item.flavor_name or "").lower(),
        item.id or 0,
    )


async def get_with_items(
    session: AsyncSession,
    sheet_id: int,
    *,
    for_update: bool = False,
) -> PrepSheet:
    stmt = (
        select(PrepSheet)
        .options(selectinload(PrepSheet.items).selectinload(PrepSheetItem.order))
        .where(PrepSheet.id == sheet_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    sheet = (await session.execute(stmt)).scalars().first()
    if sheet is None:
        raise NotFound(f"prep sheet not found: id={sheet_id}")

    if sheet.items:
        sheet.items.sort(key=display_key)
    return sheet


async def get_draft(session: AsyncSession, sheet_id: int) -> PrepSheet:
    """Load a sheet for mutation; anything but DRAFT is a state error."""
    sheet = await get_with_items(session, sheet_id, for_update=True)
    if sheet.status != PrepSheetStatus.DRAFT:
        raise StateConflict(f"prep sheet {sheet.id} is {sheet.status.value}; only draft sheets can be changed")
    return sheet


async def get_item(session: AsyncSession, item_id: int) -> PrepSheetItem:
    item = (
        await session.execute(select(PrepSheetItem).where(PrepSheetItem.id == item_id))
    ).scalars().first()
    if item is None:
        raise NotFound(f"prep sheet item not found: id={item_id}")
    return item


async def list_sheets(
    session: AsyncSession,
    *,
    sheet_date: Optional[date] = None,
    status: Optional[PrepSheetStatus] = None,
    limit: int = 50,
) -> list[PrepSheet]:
    stmt = (
        select(PrepSheet)
        .options(selectinload(PrepSheet.items).selectinload(PrepSheetItem.order))
        .order_by(PrepSheet.id.desc())
        .limit(max(int(limit), 1))
    )
    if sheet_date is not None:
        stmt = stmt.where(PrepSheet.sheet_date == sheet_date)
    if status is not None:
        stmt = stmt.where(PrepSheet.status == status)

    sheets = list((await session.execute(stmt)).scalars())
    for sheet in sheets:
        if sheet.items:
            sheet.items.sort(key=display_key)
    return sheets


async def list_available_orders(session: AsyncSession, on_date: date) -> list[Order]:
    """
    Candidate orders for a sheet on `on_date`: on a slot of that date,
    submitted/confirmed, and not on any prep sheet yet. Read only.
    """
    on_any_sheet = exists().where(PrepSheetItem.order_id == Order.id)
    stmt = (
        select(Order)
        .join(BakeSlot, BakeSlot.id == Order.bake_slot_id)
        .where(
            BakeSlot.slot_date == on_date,
            Order.status.in_(list(ASSIGNABLE_STATUSES)),
            ~on_any_sheet,
        )
        .order_by(Order.customer_name.asc(), Order.id.asc())
    )
    return list((await session.execute(stmt)).scalars())


async def order_is_on_a_sheet(session: AsyncSession, order_id: int) -> Optional[int]:
    """Id of the sheet holding the order, if any."""
    row = (
        await session.execute(
            select(PrepSheetItem.prep_sheet_id).where(PrepSheetItem.order_id == order_id).limit(1)
        )
    ).first()
    return int(row[0]) if row else None
