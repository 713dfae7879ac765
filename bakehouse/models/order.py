# bakehouse/models/order.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakehouse.db.base import Base
from bakehouse.models.enums import OrderStatus

UTC = timezone.utc


class Order(Base):
    """
    A customer's commitment on one bake slot.

    - items      serialized line-item list (see services.order_items); kept
                 as text so bad historical payloads survive and can be
                 handled with the quantity fallback
    - status     only changed through services.order_lifecycle so the slot's
                 capacity counter stays in step
    - financial fields are carried through untouched by the core workflow
    """

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_bake_slot", "bake_slot_id"),
        Index("ix_orders_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_no: Mapped[str] = mapped_column(String(32), unique=True, index=True)

    bake_slot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bake_slots.id", ondelete="RESTRICT"), nullable=False
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    items: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OrderStatus.SUBMITTED,
    )

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    adjustment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} no={self.order_no!r} slot={self.bake_slot_id} status={self.status}>"
