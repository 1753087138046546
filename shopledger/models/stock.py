"""Stock movement ledger."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.db.base import Base


class MovementType(str, Enum):
    """Kinds of stock movements."""

    PURCHASE = "purchase"  # Goods received and approved
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    USAGE_IN_OS = "usage_in_os"  # Consumed by a service order


class StockMovement(Base):
    """Append-only ledger of stock changes."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    ts: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movement_type: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    ref_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # purchase_order_item
    ref_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="stock_movements")


# Forward references
from shopledger.models.product import Product
