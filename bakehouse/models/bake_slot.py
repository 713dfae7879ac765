# bakehouse/models/bake_slot.py
from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bakehouse.db.base import Base

UTC = timezone.utc


class BakeSlot(Base):
    """
    Capacity-bounded bake day at a pickup location.

    - total_capacity   loaves the slot is planned for
    - current_orders   committed loaves (capacity ledger counter); equals the
                       sum of quantities of counting orders on this slot.
                       May exceed total_capacity (overbooking is allowed),
                       never below 0
    - is_open          manual open/close switch, independent of the counter
    """

    __tablename__ = "bake_slots"
    __table_args__ = (Index("ix_bake_slots_date", "slot_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    location_name: Mapped[str] = mapped_column(String(128), nullable=False)

    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cutoff_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    manually_closed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    manually_closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

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
        return (
            f"<BakeSlot id={self.id} date={self.slot_date} loc={self.location_name!r} "
            f"committed={self.current_orders}/{self.total_capacity} open={self.is_open}>"
        )
