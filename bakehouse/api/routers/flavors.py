# bakehouse/api/routers/flavors.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.api.deps import get_actor
from bakehouse.core.actor import ActorContext
from bakehouse.db.session import get_session
from bakehouse.schemas.flavor import FlavorCreateIn, FlavorOut, FlavorUpdateIn
from bakehouse.services import flavor_catalog
from bakehouse.services.errors import BizError

router = APIRouter(prefix="/flavors", tags=["flavors"])


@router.post("", response_model=FlavorOut, status_code=201)
async def create_flavor(
    payload: FlavorCreateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> FlavorOut:
    try:
        flavor = await flavor_catalog.create_flavor(
            session,
            name=payload.name,
            actor=actor,
            flavor_id=payload.id,
            description=payload.description,
            sort_order=payload.sort_order,
            is_active=payload.is_active,
        )
        await session.commit()
        return FlavorOut.model_validate(flavor)
    except BizError:
        await session.rollback()
        raise


@router.get("", response_model=List[FlavorOut])
async def list_flavors(
    session: AsyncSession = Depends(get_session),
    active: bool = Query(False, description="only flavors that can be baked"),
) -> List[FlavorOut]:
    flavors = await flavor_catalog.list_flavors(session, active_only=active)
    return [FlavorOut.model_validate(f) for f in flavors]


@router.get("/{flavor_id}", response_model=FlavorOut)
async def get_flavor(
    flavor_id: str,
    session: AsyncSession = Depends(get_session),
) -> FlavorOut:
    flavor = await flavor_catalog.get_flavor(session, flavor_id)
    return FlavorOut.model_validate(flavor)


@router.patch("/{flavor_id}", response_model=FlavorOut)
async def update_flavor(
    flavor_id: str,
    payload: FlavorUpdateIn,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(get_actor),
) -> FlavorOut:
    """Rename, reorder or (de)activate a flavor."""
    try:
        flavor = await flavor_catalog.update_flavor(
            session,
            flavor_id,
            actor=actor,
            name=payload.name,
            description=payload.description,
            sort_order=payload.sort_order,
            is_active=payload.is_active,
        )
        await session.commit()
        return FlavorOut.model_validate(flavor)
    except BizError:
        await session.rollback()
        raise
