# bakehouse/models/__init__.py
"""
ORM model exports.
"""

from bakehouse.models.audit_event import AuditEvent
from bakehouse.models.bake_slot import BakeSlot
from bakehouse.models.enums import Disposition, OrderStatus, PrepSheetStatus
from bakehouse.models.flavor import Flavor
from bakehouse.models.order import Order
from bakehouse.models.prep_sheet import PrepSheet, PrepSheetItem
from bakehouse.models.production_record import ProductionRecord

__all__ = [
    "AuditEvent",
    "BakeSlot",
    "Disposition",
    "Flavor",
    "Order",
    "OrderStatus",
    "PrepSheet",
    "PrepSheetItem",
    "PrepSheetStatus",
    "ProductionRecord",
]
