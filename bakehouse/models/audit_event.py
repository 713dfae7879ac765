# bakehouse/models/audit_event.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bakehouse.db.base import Base

UTC = timezone.utc


class AuditEvent(Base):
    """
    Append-only "what happened" log.

    - category  flow family: ORDER / SLOT / PREP_SHEET / PRODUCTION
    - event     concrete event, e.g. ORDER_STATUS_CHANGED
    - ref       business reference (order_no, sheet id, record id ...)
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_category", "category"),
        Index("ix_audit_events_ref", "ref"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    event: Mapped[str] = mapped_column(String(64), nullable=False)
    ref: Mapped[str] = mapped_column(String(128), nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
