# bakehouse/services/prep_sheet_service.py
from __future__ import annotations

from datetime import date
from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.enums import PrepSheetStatus
from bakehouse.models.order import Order
from bakehouse.models.prep_sheet import PrepSheet

from bakehouse.services.prep_sheet_items import add_extra as _add_extra
from bakehouse.services.prep_sheet_items import assign_order as _assign_order
from bakehouse.services.prep_sheet_items import remove_extra as _remove_extra
from bakehouse.services.prep_sheet_items import set_actual_quantity as _set_actual_quantity
from bakehouse.services.prep_sheet_items import unassign_order as _unassign_order
from bakehouse.services.prep_sheet_items import update_extra as _update_extra
from bakehouse.services.prep_sheet_ops import create_draft as _create_draft
from bakehouse.services.prep_sheet_ops import finalize as _finalize
from bakehouse.services.prep_sheet_query import get_with_items as _get_with_items
from bakehouse.services.prep_sheet_query import list_available_orders as _list_available_orders
from bakehouse.services.prep_sheet_query import list_sheets as _list_sheets


class PrepSheetService:
    """
    Prep sheet (production batch) workflow:

      create_draft -> assign_order / unassign_order / add_extra /
      update_extra / remove_extra / set_actual_quantity -> finalize

    Every mutation requires a DRAFT sheet. Methods flush but never commit;
    the caller owns the transaction.
    """

    async def create_draft(
        self,
        session: AsyncSession,
        *,
        sheet_date: date,
        actor: ActorContext,
        notes: Optional[str] = None,
    ) -> PrepSheet:
        return await _create_draft(session, sheet_date=sheet_date, actor=actor, notes=notes)

    async def get_with_items(self, session: AsyncSession, sheet_id: int) -> PrepSheet:
        return await _get_with_items(session, sheet_id)

    async def list_sheets(
        self,
        session: AsyncSession,
        *,
        sheet_date: Optional[date] = None,
        status: Optional[PrepSheetStatus] = None,
    ) -> list[PrepSheet]:
        return await _list_sheets(session, sheet_date=sheet_date, status=status)

    async def list_available_orders(self, session: AsyncSession, on_date: date) -> list[Order]:
        return await _list_available_orders(session, on_date)

    async def assign_order(
        self,
        session: AsyncSession,
        *,
        sheet_id: int,
        order_id: int,
        actor: ActorContext,
    ) -> PrepSheet:
        return await _assign_order(session, sheet_id=sheet_id, order_id=order_id, actor=actor)

    async def unassign_order(
        self,
        session: AsyncSession,
        *,
        sheet_id: int,
        order_id: int,
        actor: ActorContext,
    ) -> PrepSheet:
        return await _unassign_order(session, sheet_id=sheet_id, order_id=order_id, actor=actor)

    async def add_extra(
        self,
        session: AsyncSession,
        *,
        sheet_id: int,
        flavor_id: str,
        quantity: int,
        actor: ActorContext,
    ) -> PrepSheet:
        return await _add_extra(
            session,
            sheet_id=sheet_id,
            flavor_id=flavor_id,
            quantity=quantity,
            actor=actor,
        )

    async def update_extra(
        self,
        session: AsyncSession,
        *,
        item_id: int,
        quantity: int,
        actor: ActorContext,
    ) -> PrepSheet:
        return await _update_extra(session, item_id=item_id, quantity=quantity, actor=actor)

    async def remove_extra(
        self,
        session: AsyncSession,
        *,
        item_id: int,
        actor: ActorContext,
    ) -> PrepSheet:
        return await _remove_extra(session, item_id=item_id, actor=actor)

    async def set_actual_quantity(
        self,
        session: AsyncSession,
        *,
        item_id: int,
        quantity: Optional[int],
        actor: ActorContext,
    ) -> PrepSheet:
        return await _set_actual_quantity(session, item_id=item_id, quantity=quantity, actor=actor)

    async def finalize(
        self,
        session: AsyncSession,
        *,
        sheet_id: int,
        actor: ActorContext,
        actual_quantities: Optional[Mapping[int, int]] = None,
    ) -> PrepSheet:
        return await _finalize(
            session,
            sheet_id=sheet_id,
            actor=actor,
            actual_quantities=actual_quantities,
        )
