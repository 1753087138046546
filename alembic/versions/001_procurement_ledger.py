"""Procurement and payables schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum members are stored by name, matching SQLAlchemy's Enum(PythonEnum) default
po_status = sa.Enum("DRAFT", "SENT", "APPROVED", "RECEIVED", "CANCELLED", name="postatus")
qc_status = sa.Enum("APPROVED", "REJECTED", "PARTIAL", name="qualitycontrolstatus")
payable_status = sa.Enum("OPEN", "PAID", "OVERDUE", name="payablestatus")
payment_type = sa.Enum("REVENUE", "EXPENSE", "TRANSFER", name="paymenttype")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Directory
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("contact_info", sa.String(500), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock_quantity", sa.Numeric(10, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )

    # Stock ledger
    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ts", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("movement_type", sa.String(30), nullable=False),
        sa.Column("quantity_change", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("ref_type", sa.String(50), nullable=True),
        sa.Column("ref_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
    )

    # Purchase orders
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("status", po_status, nullable=False, index=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True, index=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("purchase_order_id", sa.Integer(), sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("quantity_ordered", sa.Numeric(10, 2), nullable=False),
        sa.Column("quantity_received", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("quantity_approved", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "quality_control_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("purchase_order_item_id", sa.Integer(), sa.ForeignKey("purchase_order_items.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("inspector_id", sa.Integer(), nullable=False),
        sa.Column("inspection_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("status", qc_status, nullable=False),
        sa.Column("approved_quantity", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("rejected_quantity", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("defects_found", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Payables
    op.create_table(
        "accounts_payable",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("total_amount_due", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("balance_due", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False, index=True),
        sa.Column("status", payable_status, nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("idx_payable_status_due", "accounts_payable", ["status", "due_date"])
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_type", payment_type, nullable=False),
        sa.Column("accounts_payable_id", sa.Integer(), sa.ForeignKey("accounts_payable.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("recorded_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_index("idx_payable_status_due", table_name="accounts_payable")
    op.drop_table("accounts_payable")
    op.drop_table("quality_control_records")
    op.drop_table("purchase_order_items")
    op.drop_table("purchase_orders")
    op.drop_table("stock_movements")
    op.drop_table("products")
    op.drop_table("suppliers")

    bind = op.get_bind()
    for enum in (payment_type, payable_status, qc_status, po_status):
        enum.drop(bind, checkfirst=True)
