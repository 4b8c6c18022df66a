"""initial schema: inventory, users, sessions, orders, api logs

Revision ID: 4b1e9c2d7a10
Revises:
Create Date: 2026-03-02
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b1e9c2d7a10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntPK = sa.BigInteger().with_variant(sa.Integer, "sqlite")

role = sa.Enum("admin", "user", name="role")
order_type = sa.Enum("general", "brand", name="order_type")
order_status = sa.Enum("pending", "partial", "completed", "cancelled", name="order_status")
order_item_status = sa.Enum("pending", "partial", "completed", name="order_item_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "inventory_items",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("brand", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("min_stock", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("stock >= 0", name="ck_inventory_stock_nonneg"),
        sa.CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock_nonneg"),
        sa.CheckConstraint("price >= 0", name="ck_inventory_price_nonneg"),
        sa.CheckConstraint("weight >= 0", name="ck_inventory_weight_nonneg"),
    )
    op.create_index("ix_inventory_items_brand", "inventory_items", ["brand"])

    op.create_table(
        "users",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("pin_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("role", role, nullable=False),
        sa.Column("failed_attempts", sa.Integer(), nullable=False),
        sa.Column("blocked", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "auth_sessions",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"])

    op.create_table(
        "orders",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column("type", order_type, nullable=False),
        sa.Column("brand", sa.String(128)),
        sa.Column("status", order_status, nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.CheckConstraint("total_items > 0", name="ck_order_total_items_pos"),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("order_id", sa.BigInteger(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "inventory_item_id",
            sa.BigInteger(),
            sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity_ordered", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False),
        sa.Column("price_at_time", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", order_item_status, nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        sa.UniqueConstraint("order_id", "inventory_item_id", name="uq_order_item_product"),
        sa.CheckConstraint("quantity_ordered > 0", name="ck_order_item_qty_ordered_pos"),
        sa.CheckConstraint("quantity_received >= 0", name="ck_order_item_qty_received_nonneg"),
        sa.CheckConstraint("quantity_received <= quantity_ordered", name="ck_order_item_received_le_ordered"),
        sa.CheckConstraint("price_at_time >= 0", name="ck_order_item_price_nonneg"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "order_sequences",
        sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.CheckConstraint("last_value >= 0", name="ck_order_sequence_nonneg"),
    )

    op.create_table(
        "api_logs",
        sa.Column("id", BigIntPK, primary_key=True),
        sa.Column("user_id", sa.BigInteger()),
        sa.Column("user_name", sa.String(200)),
        sa.Column("user_role", sa.String(16)),
        sa.Column("method", sa.String(8), nullable=False),
        sa.Column("endpoint", sa.String(255), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("user_agent", sa.String(255)),
        sa.Column("response_time_ms", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_api_logs_timestamp", "api_logs", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_api_logs_timestamp", table_name="api_logs")
    op.drop_table("api_logs")
    op.drop_table("order_sequences")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_created_at", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_auth_sessions_user_id", table_name="auth_sessions")
    op.drop_table("auth_sessions")
    op.drop_table("users")
    op.drop_index("ix_inventory_items_brand", table_name="inventory_items")
    op.drop_table("inventory_items")

    bind = op.get_bind()
    for enum_type in (order_item_status, order_status, order_type, role):
        enum_type.drop(bind, checkfirst=True)
