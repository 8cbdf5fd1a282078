"""Initial schema: users, customer addresses, pickup orders

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users (customers and agents) ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("phone", "user_type", name="uq_users_phone_user_type"),
        sa.CheckConstraint("user_type IN ('customer', 'agent')", name="ck_users_user_type"),
    )

    # --- Customer addresses ---
    op.create_table(
        "customer_addresses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("full_address", sa.Text, nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=False),
        sa.Column("pincode", sa.String(10), nullable=False),
        sa.Column("latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_customer_addresses_customer", "customer_addresses", ["customer_id"])

    # --- Orders ---
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("address_id", sa.Integer, sa.ForeignKey("customer_addresses.id"), nullable=False),
        sa.Column("agent_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("phone_model", sa.String(255), nullable=False),
        sa.Column("phone_variant", sa.String(100), nullable=True),
        sa.Column("phone_condition", sa.Text, nullable=True),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("pickup_date", sa.Date, nullable=False),
        sa.Column("time_slot", sa.String(50), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('pending', 'in-progress', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
        sa.CheckConstraint("price >= 0", name="ck_orders_price_non_negative"),
    )
    op.create_index("idx_orders_customer", "orders", ["customer_id"])
    op.create_index(
        "idx_orders_pending_unassigned", "orders", ["id"],
        postgresql_where=sa.text("status = 'pending' AND agent_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_table("orders")
    op.drop_table("customer_addresses")
    op.drop_table("users")
