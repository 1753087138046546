"""Purchase order models: orders, line items and quality-control inspections."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.core.config import local_today
from shopledger.db.base import Base, TimestampMixin, VersionMixin


class POStatus(str, Enum):
    """Status of a purchase order."""

    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Orders still waiting on the supplier
PENDING_STATUSES = (POStatus.DRAFT, POStatus.SENT, POStatus.APPROVED)
TERMINAL_STATUSES = (POStatus.RECEIVED, POStatus.CANCELLED)


class QualityControlStatus(str, Enum):
    """Outcome of one inspection pass."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PARTIAL = "partial"


class PurchaseOrder(Base, TimestampMixin, VersionMixin):
    """A purchase order to a supplier."""

    __tablename__ = "purchase_orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    supplier_id: Mapped[int] = mapped_column(
        ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status: Mapped[POStatus] = mapped_column(
        SQLEnum(POStatus), default=POStatus.DRAFT, nullable=False, index=True
    )
    order_date: Mapped[date] = mapped_column(Date, default=local_today, nullable=False)
    expected_delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    # Sum of item subtotals, maintained by PurchaseOrderService
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="purchase_orders")
    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )

    @property
    def display_number(self) -> str:
        return f"PO-{self.id:04d}" if self.id else "PO-NEW"


class PurchaseOrderItem(Base, TimestampMixin):
    """A single product line in a purchase order."""

    __tablename__ = "purchase_order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_order_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity_ordered: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity_received: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    quantity_approved: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # quantity_ordered * unit_price at order time; receiving never touches it
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Relationships
    purchase_order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder", back_populates="items")
    product: Mapped["Product"] = relationship("Product", back_populates="purchase_order_items")
    inspections: Mapped[list["QualityControlRecord"]] = relationship(
        "QualityControlRecord",
        back_populates="purchase_order_item",
        cascade="all, delete-orphan",
        order_by="QualityControlRecord.id",
    )

    @property
    def quantity_outstanding(self) -> Decimal:
        remaining = Decimal(self.quantity_ordered) - Decimal(self.quantity_received or 0)
        return remaining if remaining > 0 else Decimal("0")

    @property
    def is_fully_received(self) -> bool:
        return Decimal(self.quantity_received or 0) >= Decimal(self.quantity_ordered)


class QualityControlRecord(Base, TimestampMixin):
    """One inspection pass over a received purchase order item."""

    __tablename__ = "quality_control_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_order_item_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inspector_id: Mapped[int] = mapped_column(Integer, nullable=False)
    inspection_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    status: Mapped[QualityControlStatus] = mapped_column(SQLEnum(QualityControlStatus), nullable=False)
    approved_quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    rejected_quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    defects_found: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    purchase_order_item: Mapped["PurchaseOrderItem"] = relationship(
        "PurchaseOrderItem", back_populates="inspections"
    )


# Forward references
from shopledger.models.supplier import Supplier
from shopledger.models.product import Product
