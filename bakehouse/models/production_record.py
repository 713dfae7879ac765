# bakehouse/models/production_record.py
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakehouse.db.base import Base
from bakehouse.models.enums import Disposition

UTC = timezone.utc


class ProductionRecord(Base):
    """
    Finalized, independently disposable group of loaves.

    Records form a flat arena keyed by id:
      - parent_id   record this one was split from (NULL for originals)
      - root_id     original record of the lineage (NULL for originals)

    For every original R: R.quantity + sum(quantity where root_id = R.id)
    equals the quantity R was created with at finalization.
    """

    __tablename__ = "production_records"
    __table_args__ = (
        Index("ix_production_records_sheet", "prep_sheet_id"),
        Index("ix_production_records_order", "order_id"),
        Index("ix_production_records_root", "root_id"),
        Index("ix_production_records_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prep_sheet_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prep_sheets.id", ondelete="RESTRICT"), nullable=False
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("production_records.id", ondelete="RESTRICT"), nullable=True
    )
    root_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("production_records.id", ondelete="RESTRICT"), nullable=True
    )

    flavor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    flavor_name: Mapped[str] = mapped_column(String(128), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    production_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[Disposition] = mapped_column(
        SAEnum(
            Disposition,
            name="production_disposition",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=Disposition.PENDING,
    )
    sale_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    @property
    def lineage_root_id(self) -> int:
        return self.root_id if self.root_id is not None else self.id

    @property
    def realized_revenue(self) -> Decimal:
        """quantity * sale_price for sold records, 0 otherwise."""
        if self.status != Disposition.SOLD:
            return Decimal("0")
        return Decimal(self.quantity) * Decimal(self.sale_price or 0)

    def __repr__(self) -> str:
        return (
            f"<ProductionRecord id={self.id} sheet={self.prep_sheet_id} order={self.order_id} "
            f"flavor={self.flavor_id!r} qty={self.quantity} status={self.status} root={self.root_id}>"
        )
