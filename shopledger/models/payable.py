"""Accounts payable models: debts owed to suppliers and the payments applied to them."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.core.config import local_today
from shopledger.db.base import Base, TimestampMixin, VersionMixin


class PayableStatus(str, Enum):
    """Status of an account payable."""

    OPEN = "open"
    PAID = "paid"
    OVERDUE = "overdue"


# Money still owed
UNPAID_STATUSES = (PayableStatus.OPEN, PayableStatus.OVERDUE)


class PaymentType(str, Enum):
    """Direction of a money movement."""

    REVENUE = "revenue"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class AccountsPayable(Base, TimestampMixin, VersionMixin):
    """Money owed, optionally to a supplier.

    balance_due and status are derived; only PayableLedgerService writes them.
    """

    __tablename__ = "accounts_payable"
    __table_args__ = (
        Index("idx_payable_status_due", "status", "due_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    supplier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    total_amount_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[PayableStatus] = mapped_column(
        SQLEnum(PayableStatus), default=PayableStatus.OPEN, nullable=False
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships
    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", back_populates="payables")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="accounts_payable", order_by="Payment.id"
    )


class Payment(Base):
    """Append-only history of money applied to (or reversed from) a payable."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # negative for reversals
    payment_date: Mapped[date] = mapped_column(Date, default=local_today, nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType), default=PaymentType.EXPENSE, nullable=False
    )
    accounts_payable_id: Mapped[int] = mapped_column(
        ForeignKey("accounts_payable.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    recorded_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    accounts_payable: Mapped["AccountsPayable"] = relationship(
        "AccountsPayable", back_populates="payments"
    )


# Forward references
from shopledger.models.supplier import Supplier
