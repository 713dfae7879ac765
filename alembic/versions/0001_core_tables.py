"""core tables: flavors, bake slots, orders, prep sheets, production records, audit

Revision ID: 0001_core_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_core_tables"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "flavors",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "bake_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("location_name", sa.String(length=128), nullable=False),
        sa.Column("total_capacity", sa.Integer(), nullable=False),
        sa.Column("current_orders", sa.Integer(), nullable=False),
        sa.Column("cutoff_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_open", sa.Boolean(), nullable=False),
        sa.Column("manually_closed_by", sa.String(length=128), nullable=True),
        sa.Column("manually_closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bake_slots_date", "bake_slots", ["slot_date"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_no", sa.String(length=32), nullable=False),
        sa.Column(
            "bake_slot_id",
            sa.Integer(),
            sa.ForeignKey("bake_slots.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("items", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_status", sa.String(length=32), nullable=False),
        sa.Column("adjustment_reason", sa.Text(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_orders_order_no", "orders", ["order_no"], unique=True)
    op.create_index("ix_orders_bake_slot", "orders", ["bake_slot_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "prep_sheets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sheet_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_by", sa.String(length=128), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_prep_sheets_date", "prep_sheets", ["sheet_date"])

    op.create_table(
        "prep_sheet_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "prep_sheet_id",
            sa.Integer(),
            sa.ForeignKey("prep_sheets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("flavor_id", sa.String(length=64), nullable=False),
        sa.Column("flavor_name", sa.String(length=128), nullable=False),
        sa.Column("planned_quantity", sa.Integer(), nullable=False),
        sa.Column("actual_quantity", sa.Integer(), nullable=True),
    )
    op.create_index("ix_prep_sheet_items_sheet", "prep_sheet_items", ["prep_sheet_id"])
    op.create_index("ix_prep_sheet_items_order", "prep_sheet_items", ["order_id"])

    op.create_table(
        "production_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "prep_sheet_id",
            sa.Integer(),
            sa.ForeignKey("prep_sheets.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "parent_id",
            sa.Integer(),
            sa.ForeignKey("production_records.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "root_id",
            sa.Integer(),
            sa.ForeignKey("production_records.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("flavor_id", sa.String(length=64), nullable=False),
        sa.Column("flavor_name", sa.String(length=128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("production_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("sale_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_production_records_sheet", "production_records", ["prep_sheet_id"])
    op.create_index("ix_production_records_order", "production_records", ["order_id"])
    op.create_index("ix_production_records_root", "production_records", ["root_id"])
    op.create_index("ix_production_records_status", "production_records", ["status"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("event", sa.String(length=64), nullable=False),
        sa.Column("ref", sa.String(length=128), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_events_category", "audit_events", ["category"])
    op.create_index("ix_audit_events_ref", "audit_events", ["ref"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_ref", table_name="audit_events")
    op.drop_index("ix_audit_events_category", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_production_records_status", table_name="production_records")
    op.drop_index("ix_production_records_root", table_name="production_records")
    op.drop_index("ix_production_records_order", table_name="production_records")
    op.drop_index("ix_production_records_sheet", table_name="production_records")
    op.drop_table("production_records")

    op.drop_index("ix_prep_sheet_items_order", table_name="prep_sheet_items")
    op.drop_index("ix_prep_sheet_items_sheet", table_name="prep_sheet_items")
    op.drop_table("prep_sheet_items")

    op.drop_index("ix_prep_sheets_date", table_name="prep_sheets")
    op.drop_table("prep_sheets")

    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_bake_slot", table_name="orders")
    op.drop_index("ix_orders_order_no", table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_bake_slots_date", table_name="bake_slots")
    op.drop_table("bake_slots")

    op.drop_table("flavors")
