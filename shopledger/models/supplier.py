"""Supplier model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.db.base import Base, TimestampMixin


class Supplier(Base, TimestampMixin):
    """Supplier that goods are ordered from and money is owed to."""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_info: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    purchase_orders: Mapped[list["PurchaseOrder"]] = relationship(
        "PurchaseOrder", back_populates="supplier"
    )
    payables: Mapped[list["AccountsPayable"]] = relationship(
        "AccountsPayable", back_populates="supplier"
    )


# Forward references
from shopledger.models.purchase_order import PurchaseOrder
from shopledger.models.payable import AccountsPayable
