# bakehouse/schemas/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from bakehouse.models.enums import OrderStatus
from bakehouse.services.order_items import OrderLineItem, parse_line_items


class OrderOut(BaseModel):
    id: int
    order_no: str
    bake_slot_id: int
    customer_name: str
    customer_email: Optional[str] = None
    status: OrderStatus
    total_amount: Decimal
    payment_method: Optional[str] = None
    payment_status: str
    adjustment_reason: Optional[str] = None
    customer_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    # raw stored payload; decoded below
    items: str = Field(exclude=True)

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def lines(self) -> List[OrderLineItem]:
        return parse_line_items(self.items).lines

    @computed_field  # type: ignore[prop-decorator]
    @property
    def items_readable(self) -> bool:
        return parse_line_items(self.items).ok


class StatusChangeOut(BaseModel):
    order_id: int
    before: OrderStatus
    after: OrderStatus
    capacity_delta: int
    changed: bool

    model_config = ConfigDict(from_attributes=True)


class BulkStatusOut(BaseModel):
    capacity_changed: int
    changes: List[StatusChangeOut] = []


# --------- input models ---------


class OrderCreateIn(BaseModel):
    bake_slot_id: int
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: Optional[str] = None
    lines: List[OrderLineItem]
    total_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    customer_notes: Optional[str] = None
    # staff entry may overbook / ignore cutoff
    override_capacity: bool = False


class OrderStatusIn(BaseModel):
    status: str


class BulkStatusIn(BaseModel):
    order_ids: List[int] = Field(min_length=1)
    status: str


class OrderAdjustIn(BaseModel):
    amount: Decimal
    reason: str
