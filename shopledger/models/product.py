"""Product model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.db.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """Product in the catalog. stock_quantity is only moved by the stock ledger."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    stock_quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    # Relationships
    stock_movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="product"
    )
    purchase_order_items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem", back_populates="product"
    )


# Forward references
from shopledger.models.stock import StockMovement
from shopledger.models.purchase_order import PurchaseOrderItem
