# bakehouse/api/routers/bake_slots.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.api.deps import get_actor
from bakehouse.core.actor import ActorContext
from bakehouse.db.session import get_session
from bakehouse.schemas.bake_slot import (
    BakeSlotCreateIn,
    BakeSlotOut,
    BakeSlotUpdateIn,
    RecountOut,
    SlotCapacityOut,
    SlotOpenIn,
)
from bakehouse.services import capacity_ledger
from bakehouse.services.errors import BizError

router = APIRouter(prefix="/bake-slots", tags=["bake-slots"])


@router.post("", response_model=BakeSlotOut, status_code=201)
async def create_bake_slot(
    payload: BakeSlotCreateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> BakeSlotOut:
    try:
        slot = await capacity_ledger.create_slot(
            session,
            slot_date=payload.slot_date,
            location_name=payload.location_name,
            total_capacity=payload.total_capacity,
            cutoff_at=payload.cutoff_at,
            actor=actor,
        )
        await session.commit()
        return BakeSlotOut.model_validate(slot)
    except BizError:
        await session.rollback()
        raise


@router.get("", response_model=List[BakeSlotOut])
async def list_bake_slots(
    session: AsyncSession = Depends(get_session),
    on_date: Optional[date] = Query(None, alias="date"),
) -> List[BakeSlotOut]:
    slots = await capacity_ledger.list_slots(session, slot_date=on_date)
    return [BakeSlotOut.model_validate(s) for s in slots]


@router.get("/{slot_id}/capacity", response_model=SlotCapacityOut)
async def get_slot_capacity(
    slot_id: int,
    session: AsyncSession = Depends(get_session),
) -> SlotCapacityOut:
    cap = await capacity_ledger.get_open_capacity(session, slot_id)
    return SlotCapacityOut.model_validate(cap)


@router.patch("/{slot_id}", response_model=BakeSlotOut)
async def update_bake_slot(
    slot_id: int,
    payload: BakeSlotUpdateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> BakeSlotOut:
    """
    Change capacity, cutoff or location. Committed loaves stay as they are;
    lowering capacity below them leaves the slot overbooked.
    """
    try:
        slot = await capacity_ledger.update_slot(
            session,
            slot_id,
            actor=actor,
            total_capacity=payload.total_capacity,
            cutoff_at=payload.cutoff_at,
            clear_cutoff="cutoff_at" in payload.model_fields_set and payload.cutoff_at is None,
            location_name=payload.location_name,
        )
        await session.commit()
        return BakeSlotOut.model_validate(slot)
    except BizError:
        await session.rollback()
        raise


@router.post("/{slot_id}/open", response_model=BakeSlotOut)
async def set_bake_slot_open(
    slot_id: int,
    payload: SlotOpenIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> BakeSlotOut:
    """Manually open or close a slot for new orders."""
    try:
        slot = await capacity_ledger.set_slot_open(session, slot_id, is_open=payload.is_open, actor=actor)
        await session.commit()
        return BakeSlotOut.model_validate(slot)
    except BizError:
        await session.rollback()
        raise


@router.post("/{slot_id}/recount", response_model=RecountOut)
async def recount_bake_slot(
    slot_id: int,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> RecountOut:
    """
    Rebuild the committed counter from the slot's orders.

    - before / after: counter value before and after the rebuild
    - drift: before - after (0 when the counter was already right)
    """
    try:
        result = await capacity_ledger.recount_committed(session, slot_id, actor=actor)
        await session.commit()
        return RecountOut.model_validate(result)
    except BizError:
        await session.rollback()
        raise
