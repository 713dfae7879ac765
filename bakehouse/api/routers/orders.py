# bakehouse/api/routers/orders.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.api.deps import get_actor
from bakehouse.core.actor import ActorContext
from bakehouse.core.config import get_settings
from bakehouse.db.session import get_session
from bakehouse.schemas.order import (
    BulkStatusIn,
    BulkStatusOut,
    OrderAdjustIn,
    OrderCreateIn,
    OrderOut,
    OrderStatusIn,
    StatusChangeOut,
)
from bakehouse.services import order_lifecycle
from bakehouse.services.errors import BizError

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderOut, status_code=201)
async def submit_order(
    payload: OrderCreateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> OrderOut:
    """
    Take a new order on a bake slot (status `submitted`).

    Capacity / open / cutoff checks apply unless override_capacity is set
    or ENFORCE_SLOT_CAPACITY is off.
    """
    enforce = get_settings().ENFORCE_SLOT_CAPACITY and not payload.override_capacity
    try:
        order = await order_lifecycle.submit_order(
            session,
            slot_id=payload.bake_slot_id,
            lines=payload.lines,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            total_amount=payload.total_amount,
            payment_method=payload.payment_method,
            customer_notes=payload.customer_notes,
            actor=actor,
            enforce_capacity=enforce,
        )
        await session.commit()
        return OrderOut.model_validate(order)
    except BizError:
        await session.rollback()
        raise


@router.get("", response_model=List[OrderOut])
async def list_orders(
    session: AsyncSession = Depends(get_session),
    slot_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
) -> List[OrderOut]:
    st = order_lifecycle.coerce_status(status) if status else None
    orders = await order_lifecycle.list_orders(session, slot_id=slot_id, status=st, limit=limit)
    return [OrderOut.model_validate(o) for o in orders]


@router.post("/bulk-status", response_model=BulkStatusOut)
async def bulk_update_order_status(
    payload: BulkStatusIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> BulkStatusOut:
    """All listed orders change, or none do."""
    try:
        changes = await order_lifecycle.bulk_update_status(
            session, payload.order_ids, payload.status, actor=actor
        )
        await session.commit()
        return BulkStatusOut(
            capacity_changed=order_lifecycle.count_capacity_changes(changes),
            changes=[StatusChangeOut.model_validate(c) for c in changes],
        )
    except BizError:
        await session.rollback()
        raise


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    session: AsyncSession = Depends(get_session),
) -> OrderOut:
    order = await order_lifecycle.get_order(session, order_id)
    return OrderOut.model_validate(order)


@router.post("/{order_id}/status", response_model=StatusChangeOut)
async def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> StatusChangeOut:
    try:
        change = await order_lifecycle.update_status(session, order_id, payload.status, actor=actor)
        await session.commit()
        return StatusChangeOut.model_validate(change)
    except BizError:
        await session.rollback()
        raise


@router.post("/{order_id}/adjust", response_model=OrderOut)
async def adjust_order_amount(
    order_id: int,
    payload: OrderAdjustIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> OrderOut:
    try:
        order = await order_lifecycle.adjust_order_amount(
            session, order_id, amount=payload.amount, reason=payload.reason, actor=actor
        )
        await session.commit()
        return OrderOut.model_validate(order)
    except BizError:
        await session.rollback()
        raise
