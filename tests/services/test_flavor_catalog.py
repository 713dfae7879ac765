# tests/services/test_flavor_catalog.py
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.models.audit_event import AuditEvent
from bakehouse.services import flavor_catalog
from bakehouse.services.errors import NotFound, StateConflict, ValidationFailed
from bakehouse.services.prep_sheet_service import PrepSheetService
from tests.helpers.bakery import BAKE_DAY, STAFF


@pytest.mark.asyncio
async def test_create_flavor_derives_key_from_name(session: AsyncSession):
    flavor = await flavor_catalog.create_flavor(session, name="Olive & Herb", actor=STAFF, sort_order=2)
    assert flavor.id == "olive-herb"
    assert flavor.is_active is True

    own_key = await flavor_catalog.create_flavor(session, name="Seeded Rye", flavor_id="rye", actor=STAFF)
    assert own_key.id == "rye"

    with pytest.raises(StateConflict):
        await flavor_catalog.create_flavor(session, name="Olive  &  Herb", actor=STAFF)
    with pytest.raises(ValidationFailed):
        await flavor_catalog.create_flavor(session, name="   ", actor=STAFF)
    with pytest.raises(ValidationFailed):
        await flavor_catalog.create_flavor(session, name="&&", actor=STAFF)

    ev = (
        await session.execute(select(AuditEvent).where(AuditEvent.ref == "olive-herb"))
    ).scalars().one()
    assert ev.event == "FLAVOR_CREATED"


@pytest.mark.asyncio
async def test_list_flavors_in_catalog_order(session: AsyncSession):
    await flavor_catalog.create_flavor(session, name="Cinnamon Raisin", actor=STAFF, sort_order=3)
    await flavor_catalog.create_flavor(session, name="Classic Sourdough", actor=STAFF, sort_order=1)
    await flavor_catalog.create_flavor(session, name="Pumpkin", actor=STAFF, sort_order=2, is_active=False)

    assert [f.id for f in await flavor_catalog.list_flavors(session)] == [
        "classic-sourdough",
        "pumpkin",
        "cinnamon-raisin",
    ]
    active = await flavor_catalog.list_flavors(session, active_only=True)
    assert [f.id for f in active] == ["classic-sourdough", "cinnamon-raisin"]


@pytest.mark.asyncio
async def test_update_flavor(session: AsyncSession):
    await flavor_catalog.create_flavor(session, name="Classic", flavor_id="classic", actor=STAFF)

    flavor = await flavor_catalog.update_flavor(
        session, "classic", actor=STAFF, name="Classic Sourdough", sort_order=5, is_active=False
    )
    assert (flavor.name, flavor.sort_order, flavor.is_active) == ("Classic Sourdough", 5, False)

    ev = (
        await session.execute(select(AuditEvent).where(AuditEvent.event == "FLAVOR_UPDATED"))
    ).scalars().one()
    assert ev.meta["changes"]["is_active"] == [True, False]

    with pytest.raises(ValidationFailed):
        await flavor_catalog.update_flavor(session, "classic", actor=STAFF, name=" ")
    with pytest.raises(NotFound):
        await flavor_catalog.update_flavor(session, "brioche", actor=STAFF, is_active=True)


@pytest.mark.asyncio
async def test_inactive_flavor_cannot_be_added_as_extra(session: AsyncSession):
    sheets = PrepSheetService()
    await flavor_catalog.create_flavor(session, name="Pumpkin", actor=STAFF)
    sheet = await sheets.create_draft(session, sheet_date=BAKE_DAY, actor=STAFF)

    await flavor_catalog.update_flavor(session, "pumpkin", actor=STAFF, is_active=False)
    with pytest.raises(ValidationFailed):
        await sheets.add_extra(session, sheet_id=sheet.id, flavor_id="pumpkin", quantity=2, actor=STAFF)

    await flavor_catalog.update_flavor(session, "pumpkin", actor=STAFF, is_active=True)
    sheet = await sheets.add_extra(session, sheet_id=sheet.id, flavor_id="pumpkin", quantity=2, actor=STAFF)
    assert [(it.flavor_id, it.flavor_name) for it in sheet.items] == [("pumpkin", "Pumpkin")]
