# bakehouse/services/order_items.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from bakehouse.obs.metrics import order_items_fallback_total
from bakehouse.services.errors import ValidationFailed

logger = logging.getLogger("bakehouse.order_items")

CURRENT_VERSION = 2

# unit quantity assumed for an order whose line items cannot be read
FALLBACK_QUANTITY = 1


class OrderLineItem(BaseModel):
    """
    One order line: a flavor and how many loaves of it.

    Legacy (v1) payloads were written by the order form with camelCase keys;
    both spellings are accepted on read, snake_case is written.
    """

    flavor_id: str = Field(validation_alias="flavorId")
    flavor_name: str = Field(default="", validation_alias="flavorName")
    quantity: int
    unit_price: Optional[Decimal] = Field(default=None, validation_alias="price")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


_LINES = TypeAdapter(List[OrderLineItem])


@dataclass
class ParsedLineItems:
    """
    Result of reading a stored payload. Parsing never raises:
    ok=False means the payload was unreadable and `lines` is empty.
    """

    lines: List[OrderLineItem] = field(default_factory=list)
    ok: bool = True
    version: int = CURRENT_VERSION
    error: Optional[str] = None

    @property
    def total_quantity(self) -> int:
        return sum(int(ln.quantity) for ln in self.lines)


def parse_line_items(raw: Any) -> ParsedLineItems:
    """
    Read a stored line-item payload.

    Accepted shapes:
      - {"v": 2, "lines": [...]}   current format
      - [...]                      legacy v1 (bare list)
      - already-decoded list/dict of the above
    """
    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            return ParsedLineItems(ok=False, version=0, error=f"invalid json: {e}")

    version = 1
    if isinstance(data, dict):
        version = data.get("v")
        if version != CURRENT_VERSION or "lines" not in data:
            return ParsedLineItems(ok=False, version=0, error=f"unsupported payload version: {version!r}")
        data = data["lines"]

    if not isinstance(data, list):
        return ParsedLineItems(ok=False, version=0, error=f"expected a list, got {type(data).__name__}")

    try:
        lines = _LINES.validate_python(data)
    except ValidationError as e:
        return ParsedLineItems(ok=False, version=version, error=str(e))

    bad = [ln for ln in lines if int(ln.quantity) < 1]
    if bad:
        return ParsedLineItems(
            ok=False,
            version=version,
            error=f"non-positive line quantity: flavor_id={bad[0].flavor_id}, quantity={bad[0].quantity}",
        )

    return ParsedLineItems(lines=lines, ok=True, version=version)


def total_quantity(raw: Any, *, ref: str = "") -> int:
    """
    Unit quantity of an order's payload.

    Unreadable payloads count as FALLBACK_QUANTITY (logged, not raised) so a
    status change is never blocked by bad historical data.
    """
    parsed = parse_line_items(raw)
    if parsed.ok:
        return parsed.total_quantity

    logger.warning(
        "order line items unreadable, counting as %d unit(s): ref=%s error=%s",
        FALLBACK_QUANTITY,
        ref,
        parsed.error,
    )
    order_items_fallback_total.inc()
    return FALLBACK_QUANTITY


def validate_new_lines(lines: Sequence[OrderLineItem]) -> List[OrderLineItem]:
    """Lines of a new order: at least one, each quantity >= 1."""
    if not lines:
        raise ValidationFailed("an order needs at least one line item")
    out: List[OrderLineItem] = []
    for ln in lines:
        if int(ln.quantity) < 1:
            raise ValidationFailed(
                f"line quantity must be >= 1: flavor_id={ln.flavor_id}, quantity={ln.quantity}"
            )
        if not ln.flavor_id or not ln.flavor_id.strip():
            raise ValidationFailed("line item is missing flavor_id")
        out.append(ln)
    return out


def dump_line_items(lines: Sequence[OrderLineItem]) -> str:
    """Serialize lines in the current (v2) format."""
    return json.dumps(
        {
            "v": CURRENT_VERSION,
            "lines": [ln.model_dump(mode="json") for ln in lines],
        },
        ensure_ascii=False,
    )
