# tests/services/test_production_service.py
from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.models.enums import Disposition
from bakehouse.models.production_record import ProductionRecord
from bakehouse.services.errors import NotFound, ValidationFailed
from bakehouse.services.prep_sheet_service import PrepSheetService
from bakehouse.services.production_service import ProductionService
from tests.helpers.bakery import BAKE_DAY, STAFF, make_order, make_slot, seed_flavors

sheets = PrepSheetService()
svc = ProductionService()


@pytest_asyncio.fixture
async def record(session: AsyncSession) -> ProductionRecord:
    """One finalized record of 10 classic loaves, tied to an order."""
    await seed_flavors(session)
    slot = await make_slot(session)
    order = await make_order(session, slot, [("classic", 10)])
    sheet = await sheets.create_draft(session, sheet_date=BAKE_DAY, actor=STAFF)
    await sheets.assign_order(session, sheet_id=sheet.id, order_id=order.id, actor=STAFF)
    await sheets.finalize(session, sheet_id=sheet.id, actor=STAFF)
    (rec,) = await svc.list_records(session, sheet_id=sheet.id)
    return rec


@pytest.mark.asyncio
async def test_sold_carries_price_and_other_dispositions_clear_it(session: AsyncSession, record):
    rec = await svc.update_disposition(
        session, record_id=record.id, disposition="sold", actor=STAFF, sale_price=Decimal("8.50")
    )
    assert rec.status == Disposition.SOLD
    assert rec.sale_price == Decimal("8.50")
    assert rec.realized_revenue == Decimal("85.00")

    rec = await svc.update_disposition(session, record_id=record.id, disposition="gifted", actor=STAFF)
    assert rec.sale_price is None
    assert rec.realized_revenue == Decimal("0")

    # sold without a price is recorded as free
    rec = await svc.update_disposition(session, record_id=record.id, disposition=Disposition.SOLD, actor=STAFF)
    assert rec.sale_price == Decimal("0")


@pytest.mark.asyncio
async def test_disposition_rejects_unknown_values(session: AsyncSession, record):
    with pytest.raises(ValidationFailed):
        await svc.update_disposition(session, record_id=record.id, disposition="eaten", actor=STAFF)
    with pytest.raises(NotFound):
        await svc.update_disposition(session, record_id=404, disposition="wasted", actor=STAFF)


@pytest.mark.asyncio
async def test_split_moves_quantity_into_a_sibling(session: AsyncSession, record):
    parent, sibling = await svc.split(
        session,
        record_id=record.id,
        split_quantity=3,
        new_disposition="wasted",
        actor=STAFF,
    )

    assert parent.quantity == 7
    assert parent.status == Disposition.PENDING
    assert sibling.quantity == 3
    assert sibling.status == Disposition.WASTED
    assert sibling.parent_id == parent.id
    assert sibling.root_id == parent.id
    assert (sibling.prep_sheet_id, sibling.order_id, sibling.flavor_id, sibling.production_date) == (
        parent.prep_sheet_id,
        parent.order_id,
        parent.flavor_id,
        parent.production_date,
    )


@pytest.mark.asyncio
async def test_lineage_total_is_preserved_across_split_chains(session: AsyncSession, record):
    root_id = record.id

    _, a = await svc.split(session, record_id=root_id, split_quantity=4, new_disposition="sold", actor=STAFF)
    _, b = await svc.split(session, record_id=a.id, split_quantity=1, new_disposition="gifted", actor=STAFF)
    _, c = await svc.split(session, record_id=root_id, split_quantity=2, new_disposition="personal", actor=STAFF)
    _, d = await svc.split(session, record_id=a.id, split_quantity=1, new_disposition="wasted", actor=STAFF)

    # every descendant points at the original, whatever it was split from
    assert {a.root_id, b.root_id, c.root_id, d.root_id} == {root_id}
    assert b.parent_id == a.id

    assert await svc.lineage_total(session, root_id) == 10
    quantities = (
        await session.execute(select(ProductionRecord.quantity).where(ProductionRecord.quantity > 0))
    ).scalars().all()
    assert sum(quantities) == 10
    assert all(q >= 1 for q in quantities)


@pytest.mark.asyncio
@pytest.mark.parametrize("qty", [0, -2, 10, 11])
async def test_split_rejects_out_of_range_quantities(session: AsyncSession, record, qty: int):
    with pytest.raises(ValidationFailed):
        await svc.split(session, record_id=record.id, split_quantity=qty, new_disposition="sold", actor=STAFF)

    again = await svc.get_record(session, record.id)
    assert again.quantity == 10
    assert await svc.lineage_total(session, record.id) == 10


@pytest.mark.asyncio
async def test_split_of_a_single_loaf_is_impossible(session: AsyncSession, record):
    parent, _ = await svc.split(session, record_id=record.id, split_quantity=9, new_disposition="sold", actor=STAFF)
    assert parent.quantity == 1

    with pytest.raises(ValidationFailed):
        await svc.split(session, record_id=record.id, split_quantity=1, new_disposition="sold", actor=STAFF)


@pytest.mark.asyncio
async def test_list_records_filters(session: AsyncSession, record):
    await svc.split(session, record_id=record.id, split_quantity=2, new_disposition="sold", actor=STAFF)

    assert len(await svc.list_records(session, order_id=record.order_id)) == 2
    sold = await svc.list_records(session, status=Disposition.SOLD)
    assert [r.quantity for r in sold] == [2]
    assert await svc.list_records(session, sheet_id=record.prep_sheet_id + 1) == []
