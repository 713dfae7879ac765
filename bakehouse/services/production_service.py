# bakehouse/services/production_service.py
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.enums import Disposition
from bakehouse.models.production_record import ProductionRecord
from bakehouse.obs.metrics import production_records_created_total
from bakehouse.services.audit_writer import AuditEventWriter
from bakehouse.services.errors import NotFound, ValidationFailed

logger = logging.getLogger("bakehouse.production")


def coerce_disposition(value: str | Disposition) -> Disposition:
    if isinstance(value, Disposition):
        return value
    try:
        return Disposition(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(d.value for d in Disposition)
        raise ValidationFailed(f"invalid disposition {value!r}; expected one of: {allowed}") from None


def _price(value: Optional[Decimal | float | str]) -> Decimal:
    """Sale price for a sold record; absent means 0."""
    if value is None:
        return Decimal("0")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"sale_price must be a number: {value!r}") from None
    if price < 0:
        raise ValidationFailed(f"sale_price must be >= 0: {value}")
    return price


def _apply_disposition(
    record: ProductionRecord,
    disposition: Disposition,
    sale_price: Optional[Decimal | float | str],
) -> None:
    record.status = disposition
    record.sale_price = _price(sale_price) if disposition == Disposition.SOLD else None


class ProductionService:
    """
    Finalized production records:

      - update_disposition   re-disposition is always allowed
      - split                carve split_quantity off a record into a sibling

    Records are never deleted, so the quantities of a lineage (original +
    every record with root_id = original) always add up to what was baked.
    """

    @staticmethod
    async def get_record(
        session: AsyncSession,
        record_id: int,
        *,
        for_update: bool = False,
    ) -> ProductionRecord:
        stmt = select(ProductionRecord).where(ProductionRecord.id == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        rec = (await session.execute(stmt)).scalars().first()
        if rec is None:
            raise NotFound(f"production record not found: id={record_id}")
        return rec

    @staticmethod
    async def list_records(
        session: AsyncSession,
        *,
        sheet_id: Optional[int] = None,
        order_id: Optional[int] = None,
        status: Optional[Disposition] = None,
        limit: int = 500,
    ) -> list[ProductionRecord]:
        stmt = select(ProductionRecord).order_by(ProductionRecord.id.asc()).limit(max(int(limit), 1))
        if sheet_id is not None:
            stmt = stmt.where(ProductionRecord.prep_sheet_id == sheet_id)
        if order_id is not None:
            stmt = stmt.where(ProductionRecord.order_id == order_id)
        if status is not None:
            stmt = stmt.where(ProductionRecord.status == status)
        return list((await session.execute(stmt)).scalars())

    @staticmethod
    async def lineage_total(session: AsyncSession, root_id: int) -> int:
        """Sum of quantities across an original record and everything split from it."""
        total = (
            await session.execute(
                select(func.coalesce(func.sum(ProductionRecord.quantity), 0)).where(
                    or_(ProductionRecord.id == root_id, ProductionRecord.root_id == root_id)
                )
            )
        ).scalar()
        return int(total or 0)

    async def update_disposition(
        self,
        session: AsyncSession,
        *,
        record_id: int,
        disposition: str | Disposition,
        actor: ActorContext,
        sale_price: Optional[Decimal | float | str] = None,
    ) -> ProductionRecord:
        """
        Set a record's disposition. `sold` records carry sale_price
        (0 when absent); any other disposition clears it.
        """
        target = coerce_disposition(disposition)
        rec = await self.get_record(session, record_id, for_update=True)
        before = Disposition(rec.status)

        _apply_disposition(rec, target, sale_price)
        await session.flush()

        await AuditEventWriter.write(
            session,
            category="PRODUCTION",
            event="DISPOSITION_CHANGED",
            ref=str(rec.id),
            actor=actor,
            meta={
                "from": before.value,
                "to": target.value,
                "quantity": rec.quantity,
                "sale_price": str(rec.sale_price) if rec.sale_price is not None else None,
            },
        )
        return rec

    async def split(
        self,
        session: AsyncSession,
        *,
        record_id: int,
        split_quantity: int,
        new_disposition: str | Disposition,
        actor: ActorContext,
        sale_price: Optional[Decimal | float | str] = None,
    ) -> tuple[ProductionRecord, ProductionRecord]:
        """
        Move split_quantity loaves from a record into a new sibling with
        new_disposition. Requires 1 <= split_quantity < record.quantity.

        Returns (parent, sibling).
        """
        target = coerce_disposition(new_disposition)
        try:
            qty = int(split_quantity)
        except (TypeError, ValueError):
            raise ValidationFailed(f"split_quantity must be an integer: {split_quantity!r}") from None
        if qty < 1:
            raise ValidationFailed(f"split_quantity must be >= 1: {split_quantity}")

        parent = await self.get_record(session, record_id, for_update=True)
        if qty >= int(parent.quantity):
            raise ValidationFailed(
                f"split_quantity must be less than the record quantity: "
                f"split={qty}, quantity={parent.quantity}"
            )

        parent.quantity = int(parent.quantity) - qty
        sibling = ProductionRecord(
            prep_sheet_id=parent.prep_sheet_id,
            order_id=parent.order_id,
            parent_id=parent.id,
            root_id=parent.lineage_root_id,
            flavor_id=parent.flavor_id,
            flavor_name=parent.flavor_name,
            quantity=qty,
            production_date=parent.production_date,
        )
        _apply_disposition(sibling, target, sale_price)
        session.add(sibling)
        await session.flush()

        production_records_created_total.labels("split").inc()
        logger.info(
            "production split: record=%s -> %s (+%d as %s), remaining=%d",
            parent.id,
            sibling.id,
            qty,
            target.value,
            parent.quantity,
        )
        await AuditEventWriter.write(
            session,
            category="PRODUCTION",
            event="RECORD_SPLIT",
            ref=str(parent.id),
            actor=actor,
            meta={
                "new_record_id": sibling.id,
                "split_quantity": qty,
                "remaining": parent.quantity,
                "disposition": target.value,
                "root_id": sibling.root_id,
            },
        )
        return parent, sibling
