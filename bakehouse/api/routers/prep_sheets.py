# bakehouse/api/routers/prep_sheets.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.api.deps import get_actor
from bakehouse.core.actor import ActorContext
from bakehouse.db.session import get_session
from bakehouse.models.enums import PrepSheetStatus
from bakehouse.schemas.order import OrderOut
from bakehouse.schemas.prep_sheet import (
    ActualQuantityIn,
    AssignOrderIn,
    ExtraCreateIn,
    ExtraUpdateIn,
    FinalizeIn,
    PrepSheetCreateIn,
    PrepSheetOut,
)
from bakehouse.services.errors import BizError, ValidationFailed
from bakehouse.services.prep_sheet_service import PrepSheetService

router = APIRouter(prefix="/prep-sheets", tags=["prep-sheets"])

svc = PrepSheetService()


@router.post("", response_model=PrepSheetOut, status_code=201)
async def create_prep_sheet(
    payload: PrepSheetCreateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    """Open an empty DRAFT sheet for a bake date."""
    try:
        sheet = await svc.create_draft(session, sheet_date=payload.sheet_date, actor=actor, notes=payload.notes)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.get("", response_model=List[PrepSheetOut])
async def list_prep_sheets(
    session: AsyncSession = Depends(get_session),
    on_date: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = Query(None),
) -> List[PrepSheetOut]:
    st: Optional[PrepSheetStatus] = None
    if status:
        try:
            st = PrepSheetStatus(status.strip().lower())
        except ValueError:
            raise ValidationFailed(f"invalid prep sheet status: {status!r}") from None
    sheets = await svc.list_sheets(session, sheet_date=on_date, status=st)
    return [PrepSheetOut.model_validate(s) for s in sheets]


@router.get("/available-orders", response_model=List[OrderOut])
async def list_available_orders(
    on_date: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> List[OrderOut]:
    """Orders for `date` that can still be put on a sheet."""
    orders = await svc.list_available_orders(session, on_date)
    return [OrderOut.model_validate(o) for o in orders]


@router.patch("/items/{item_id}", response_model=PrepSheetOut)
async def update_extra_item(
    item_id: int,
    payload: ExtraUpdateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    try:
        sheet = await svc.update_extra(session, item_id=item_id, quantity=payload.quantity, actor=actor)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.delete("/items/{item_id}", response_model=PrepSheetOut)
async def remove_extra_item(
    item_id: int,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    try:
        sheet = await svc.remove_extra(session, item_id=item_id, actor=actor)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.post("/items/{item_id}/actual", response_model=PrepSheetOut)
async def set_item_actual_quantity(
    item_id: int,
    payload: ActualQuantityIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    try:
        sheet = await svc.set_actual_quantity(session, item_id=item_id, quantity=payload.quantity, actor=actor)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.get("/{sheet_id}", response_model=PrepSheetOut)
async def get_prep_sheet(
    sheet_id: int,
    session: AsyncSession = Depends(get_session),
) -> PrepSheetOut:
    sheet = await svc.get_with_items(session, sheet_id)
    return PrepSheetOut.model_validate(sheet)


@router.post("/{sheet_id}/orders", response_model=PrepSheetOut)
async def assign_order_to_sheet(
    sheet_id: int,
    payload: AssignOrderIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    """
    Put an order on the sheet:

    - one item per order line;
    - the order moves to `scheduled`.
    """
    try:
        sheet = await svc.assign_order(session, sheet_id=sheet_id, order_id=payload.order_id, actor=actor)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.delete("/{sheet_id}/orders/{order_id}", response_model=PrepSheetOut)
async def unassign_order_from_sheet(
    sheet_id: int,
    order_id: int,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    try:
        sheet = await svc.unassign_order(session, sheet_id=sheet_id, order_id=order_id, actor=actor)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.post("/{sheet_id}/extras", response_model=PrepSheetOut)
async def add_extra_item(
    sheet_id: int,
    payload: ExtraCreateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    try:
        sheet = await svc.add_extra(
            session,
            sheet_id=sheet_id,
            flavor_id=payload.flavor_id,
            quantity=payload.quantity,
            actor=actor,
        )
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise


@router.post("/{sheet_id}/finalize", response_model=PrepSheetOut)
async def finalize_prep_sheet(
    sheet_id: int,
    payload: Optional[FinalizeIn] = None,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> PrepSheetOut:
    """
    DRAFT -> COMPLETED:

    - one production record per item;
    - every order on the sheet moves to `produced`.
    """
    overrides = payload.actual_quantities if payload is not None else None
    try:
        sheet = await svc.finalize(session, sheet_id=sheet_id, actor=actor, actual_quantities=overrides)
        await session.commit()
        return PrepSheetOut.model_validate(sheet)
    except BizError:
        await session.rollback()
        raise
