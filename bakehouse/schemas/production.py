# bakehouse/schemas/production.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bakehouse.models.enums import Disposition


class ProductionRecordOut(BaseModel):
    id: int
    prep_sheet_id: int
    order_id: Optional[int] = None
    parent_id: Optional[int] = None
    root_id: Optional[int] = None
    flavor_id: str
    flavor_name: str
    quantity: int
    production_date: date
    status: Disposition
    sale_price: Optional[Decimal] = None
    realized_revenue: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SplitOut(BaseModel):
    parent: ProductionRecordOut
    created: ProductionRecordOut


# --------- input models ---------


class DispositionIn(BaseModel):
    status: str
    sale_price: Optional[Decimal] = Field(default=None, ge=0)


class SplitIn(BaseModel):
    split_quantity: int
    new_status: str
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
