# bakehouse/services/prep_sheet_ops.py
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.enums import Disposition, OrderStatus, PrepSheetStatus
from bakehouse.models.prep_sheet import PrepSheet
from bakehouse.models.production_record import ProductionRecord
from bakehouse.obs.metrics import prep_sheet_finalized_total, production_records_created_total
from bakehouse.services import order_lifecycle
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import ValidationFailed
from bakehouse.services.prep_sheet_items import workflow_actor
from bakehouse.services.prep_sheet_query import get_draft, get_with_items

UTC = timezone.utc
logger = logging.getLogger("bakehouse.prep_sheet")


async def create_draft(
    session: AsyncSession,
    *,
    sheet_date: date,
    actor: ActorContext,
    notes: Optional[str] = None,
) -> PrepSheet:
    sheet = PrepSheet(
        sheet_date=sheet_date,
        status=PrepSheetStatus.DRAFT,
        notes=notes,
        created_by=actor.label,
    )
    session.add(sheet)
    await session.flush()

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="PREP_SHEET_CREATED",
        ref=str(sheet.id),
        actor=actor,
        meta={"sheet_date": sheet_date.isoformat()},
    )
    return await get_with_items(session, sheet.id)


def _resolve_actuals(sheet: PrepSheet, overrides: Mapping[int, int]) -> dict[int, int]:
    """
    Final quantity per item: override -> recorded actual -> planned.
    Override keys must be items of this sheet; values >= 0.
    """
    try:
        norm = {int(k): int(v) for k, v in overrides.items()}
    except (TypeError, ValueError):
        raise ValidationFailed(f"actual quantities must map item ids to integers: {dict(overrides)!r}") from None

    item_ids = {it.id for it in sheet.items}
    unknown = sorted(k for k in norm if k not in item_ids)
    if unknown:
        raise ValidationFailed(f"items not on prep sheet {sheet.id}: {unknown}")

    out: dict[int, int] = {}
    for it in sheet.items:
        if it.id in norm:
            qty = norm[it.id]
        elif it.actual_quantity is not None:
            qty = int(it.actual_quantity)
        else:
            qty = int(it.planned_quantity)
        if qty < 0:
            raise ValidationFailed(f"actual quantity must be >= 0: item={it.id}, value={qty}")
        out[it.id] = qty
    return out


async def finalize(
    session: AsyncSession,
    *,
    sheet_id: int,
    actor: ActorContext,
    actual_quantities: Optional[Mapping[int, int]] = None,
    occurred_at: Optional[datetime] = None,
) -> PrepSheet:
    """
    DRAFT -> COMPLETED, all or nothing (one SAVEPOINT):

      - one production record per item (quantity = actual-or-planned)
      - every referenced order -> produced, once per order
      - sheet stamped with completed_at / completed_by
    """
    now = occurred_at or datetime.now(UTC)
    wf_actor = workflow_actor(actor)

    async with session.begin_nested():
        sheet = await get_draft(session, sheet_id)
        if not sheet.items:
            raise ValidationFailed(f"prep sheet {sheet.id} has no items; nothing to finalize")

        actuals = _resolve_actuals(sheet, actual_quantities or {})

        records: list[ProductionRecord] = []
        order_ids: list[int] = []
        for it in sheet.items:
            it.actual_quantity = actuals[it.id]
            records.append(
                ProductionRecord(
                    prep_sheet_id=sheet.id,
                    order_id=it.order_id,
                    flavor_id=it.flavor_id,
                    flavor_name=it.flavor_name,
                    quantity=actuals[it.id],
                    production_date=sheet.sheet_date,
                    status=Disposition.PENDING,
                )
            )
            if it.order_id is not None and it.order_id not in order_ids:
                order_ids.append(it.order_id)

        session.add_all(records)
        await session.flush()

        changes = []
        for oid in order_ids:
            order = await order_lifecycle.get_order(session, oid, for_update=True)
            changes.append(
                await order_lifecycle.set_status(session, order, OrderStatus.PRODUCED, actor=wf_actor, observe=False)
            )

        sheet.status = PrepSheetStatus.COMPLETED
        sheet.completed_at = now
        sheet.completed_by = actor.label
        await session.flush()

    order_lifecycle.record_transitions(changes)
    prep_sheet_finalized_total.inc()
    production_records_created_total.labels("finalize").inc(len(records))
    logger.info(
        "prep sheet finalized: id=%s records=%d orders=%d by %s",
        sheet.id,
        len(records),
        len(order_ids),
        actor.label,
    )

    await AuditEventWriter.write(
        session,
        category="PREP_SHEET",
        event="PREP_SHEET_FINALIZED",
        ref=str(sheet.id),
        actor=actor,
        meta={
            "record_ids": [r.id for r in records],
            "order_ids": order_ids,
            "total_quantity": sum(actuals.values()),
        },
    )
    return await get_with_items(session, sheet.id)
