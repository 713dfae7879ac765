# bakehouse/services/flavor_catalog.py
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.flavor import Flavor
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import NotFound, StateConflict, ValidationFailed

logger = logging.getLogger("bakehouse.flavors")

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """'Olive & Herb' -> 'olive-herb'"""
    return _SLUG_RE.sub("-", name.strip().lower()).strip("-")


async def get_flavor(session: AsyncSession, flavor_id: str, *, for_update: bool = False) -> Flavor:
    stmt = select(Flavor).where(Flavor.id == flavor_id)
    if for_update:
        stmt = stmt.with_for_update()
    flavor = (await session.execute(stmt)).scalars().first()
    if flavor is None:
        raise NotFound(f"flavor not found: id={flavor_id}")
    return flavor


async def list_flavors(session: AsyncSession, *, active_only: bool = False) -> list[Flavor]:
    stmt = select(Flavor).order_by(Flavor.sort_order.asc(), Flavor.name.asc())
    if active_only:
        stmt = stmt.where(Flavor.is_active.is_(True))
    return list((await session.execute(stmt)).scalars())


async def create_flavor(
    session: AsyncSession,
    *,
    name: str,
    actor: ActorContext,
    flavor_id: Optional[str] = None,
    description: Optional[str] = None,
    sort_order: int = 0,
    is_active: bool = True,
) -> Flavor:
    """
    Add a flavor to the catalog. The key defaults to a slug of the name;
    order lines and prep sheet extras refer to flavors by this key.
    """
    if not name or not name.strip():
        raise ValidationFailed("flavor needs a name")
    key = (flavor_id or "").strip() or slugify(name)
    if not key:
        raise ValidationFailed(f"cannot derive a flavor key from name {name!r}; pass flavor_id")

    exists = (await session.execute(select(Flavor.id).where(Flavor.id == key))).scalar_one_or_none()
    if exists is not None:
        raise StateConflict(f"flavor already exists: id={key}")

    flavor = Flavor(
        id=key,
        name=name.strip(),
        description=description,
        sort_order=int(sort_order),
        is_active=bool(is_active),
    )
    session.add(flavor)
    await session.flush()
    logger.info("flavor created: id=%s name=%r by %s", flavor.id, flavor.name, actor.label)

    await AuditEventWriter.write(
        session,
        category="FLAVOR",
        event="FLAVOR_CREATED",
        ref=flavor.id,
        actor=actor,
        meta={"name": flavor.name, "is_active": flavor.is_active},
    )
    return flavor


async def update_flavor(
    session: AsyncSession,
    flavor_id: str,
    *,
    actor: ActorContext,
    name: Optional[str] = None,
    description: Optional[str] = None,
    sort_order: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> Flavor:
    """
    Edit catalog fields. Deactivating a flavor keeps it readable for existing
    orders and production records; it only stops new extras from using it.
    """
    flavor = await get_flavor(session, flavor_id, for_update=True)

    changes: dict[str, list] = {}
    if name is not None:
        if not name.strip():
            raise ValidationFailed("flavor needs a name")
        if name.strip() != flavor.name:
            changes["name"] = [flavor.name, name.strip()]
            flavor.name = name.strip()
    if description is not None and description != flavor.description:
        changes["description"] = [flavor.description, description]
        flavor.description = description
    if sort_order is not None and int(sort_order) != flavor.sort_order:
        changes["sort_order"] = [flavor.sort_order, int(sort_order)]
        flavor.sort_order = int(sort_order)
    if is_active is not None and bool(is_active) != flavor.is_active:
        changes["is_active"] = [flavor.is_active, bool(is_active)]
        flavor.is_active = bool(is_active)

    if not changes:
        return flavor
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="FLAVOR",
        event="FLAVOR_UPDATED",
        ref=flavor.id,
        actor=actor,
        meta={"changes": changes},
    )
    return flavor
