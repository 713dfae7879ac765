# bakehouse/models/enums.py
from __future__ import annotations

from enum import StrEnum


class OrderStatus(StrEnum):
    """
    Order lifecycle:

      submitted -> confirmed -> scheduled -> produced -> ready -> picked_up

    plus the two exits `canceled` / `no_show`.

    - scheduled  only set by the prep sheet workflow (order assigned to a sheet)
    - produced   only set by prep sheet finalization
    """

    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    SCHEDULED = "scheduled"
    PRODUCED = "produced"
    READY = "ready"
    PICKED_UP = "picked_up"
    CANCELED = "canceled"
    NO_SHOW = "no_show"


# every member must have an entry; a missing one raises KeyError at the transition site
COUNTS_TOWARD_CAPACITY: dict[OrderStatus, bool] = {
    OrderStatus.SUBMITTED: True,
    OrderStatus.CONFIRMED: True,
    OrderStatus.SCHEDULED: True,
    OrderStatus.PRODUCED: True,
    OrderStatus.READY: True,
    OrderStatus.PICKED_UP: True,
    OrderStatus.CANCELED: False,
    OrderStatus.NO_SHOW: False,
}

# statuses owned by the prep sheet workflow
WORKFLOW_ONLY_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.SCHEDULED, OrderStatus.PRODUCED}
)

# statuses an order may be in to be put on a prep sheet
ASSIGNABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.SUBMITTED, OrderStatus.CONFIRMED}
)


def counts_toward_capacity(status: OrderStatus) -> bool:
    return COUNTS_TOWARD_CAPACITY[status]


class PrepSheetStatus(StrEnum):
    """draft --finalize--> completed (terminal, never reopened)"""

    DRAFT = "draft"
    COMPLETED = "completed"


class Disposition(StrEnum):
    """
    What happened to a group of produced loaves.

    - PENDING     not decided yet (every record starts here)
    - PICKED_UP   collected by the ordering customer
    - SOLD        sold at the stand (carries sale_price)
    - WASTED      thrown away
    - PERSONAL    kept for the household
    - GIFTED      given away
    """

    PENDING = "pending"
    PICKED_UP = "picked_up"
    SOLD = "sold"
    WASTED = "wasted"
    PERSONAL = "personal"
    GIFTED = "gifted"
