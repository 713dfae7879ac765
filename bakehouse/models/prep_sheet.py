# bakehouse/models/prep_sheet.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakehouse.db.base import Base
from bakehouse.models.enums import PrepSheetStatus

if TYPE_CHECKING:
    from bakehouse.models.order import Order

UTC = timezone.utc


class PrepSheet(Base):
    """
    Prep sheet (production batch): the editable plan for one bake run.

    DRAFT      items may be added / removed / edited
    COMPLETED  finalized into production records; immutable forever
    """

    __tablename__ = "prep_sheets"
    __table_args__ = (Index("ix_prep_sheets_date", "sheet_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sheet_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PrepSheetStatus] = mapped_column(
        SAEnum(
            PrepSheetStatus,
            name="prep_sheet_status",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PrepSheetStatus.DRAFT,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    completed_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    items: Mapped[list["PrepSheetItem"]] = relationship(
        "PrepSheetItem",
        back_populates="prep_sheet",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_draft(self) -> bool:
        return self.status == PrepSheetStatus.DRAFT

    def __repr__(self) -> str:
        return f"<PrepSheet id={self.id} date={self.sheet_date} status={self.status}>"


class PrepSheetItem(Base):
    """
    One line of a prep sheet: either backed by an order (one item per order
    line / flavor) or a standalone "extra" (order_id is NULL).
    """

    __tablename__ = "prep_sheet_items"
    __table_args__ = (
        Index("ix_prep_sheet_items_sheet", "prep_sheet_id"),
        Index("ix_prep_sheet_items_order", "order_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prep_sheet_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prep_sheets.id", ondelete="CASCADE"), nullable=False
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True
    )

    flavor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    flavor_name: Mapped[str] = mapped_column(String(128), nullable=False)
    planned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    prep_sheet: Mapped["PrepSheet"] = relationship("PrepSheet", back_populates="items")
    order: Mapped[Optional["Order"]] = relationship("Order", lazy="selectin")

    @property
    def is_extra(self) -> bool:
        return self.order_id is None

    @property
    def customer_name(self) -> Optional[str]:
        return self.order.customer_name if self.order is not None else None

    def __repr__(self) -> str:
        return (
            f"<PrepSheetItem id={self.id} sheet={self.prep_sheet_id} order={self.order_id} "
            f"flavor={self.flavor_id!r} planned={self.planned_quantity} actual={self.actual_quantity}>"
        )
