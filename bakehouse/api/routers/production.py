# bakehouse/api/routers/production.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.api.deps import get_actor
from bakehouse.core.actor import ActorContext
from bakehouse.db.session import get_session
from bakehouse.schemas.production import DispositionIn, ProductionRecordOut, SplitIn, SplitOut
from bakehouse.services.errors import BizError
from bakehouse.services.production_service import ProductionService, coerce_disposition

router = APIRouter(prefix="/production", tags=["production"])

svc = ProductionService()


@router.get("", response_model=List[ProductionRecordOut])
async def list_production_records(
    session: AsyncSession = Depends(get_session),
    sheet_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(500, ge=1, le=2000),
) -> List[ProductionRecordOut]:
    st = coerce_disposition(status) if status else None
    records = await svc.list_records(session, sheet_id=sheet_id, order_id=order_id, status=st, limit=limit)
    return [ProductionRecordOut.model_validate(r) for r in records]


@router.get("/{record_id}", response_model=ProductionRecordOut)
async def get_production_record(
    record_id: int,
    session: AsyncSession = Depends(get_session),
) -> ProductionRecordOut:
    rec = await svc.get_record(session, record_id)
    return ProductionRecordOut.model_validate(rec)


@router.post("/{record_id}/disposition", response_model=ProductionRecordOut)
async def update_production_disposition(
    record_id: int,
    payload: DispositionIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> ProductionRecordOut:
    try:
        rec = await svc.update_disposition(
            session,
            record_id=record_id,
            disposition=payload.status,
            actor=actor,
            sale_price=payload.sale_price,
        )
        await session.commit()
        return ProductionRecordOut.model_validate(rec)
    except BizError:
        await session.rollback()
        raise


@router.post("/{record_id}/split", response_model=SplitOut)
async def split_production_record(
    record_id: int,
    payload: SplitIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> SplitOut:
    """
    Move split_quantity loaves into a new record with new_status.
    1 <= split_quantity < current quantity.
    """
    try:
        parent, created = await svc.split(
            session,
            record_id=record_id,
            split_quantity=payload.split_quantity,
            new_disposition=payload.new_status,
            actor=actor,
            sale_price=payload.sale_price,
        )
        await session.commit()
        return SplitOut(
            parent=ProductionRecordOut.model_validate(parent),
            created=ProductionRecordOut.model_validate(created),
        )
    except BizError:
        await session.rollback()
        raise
