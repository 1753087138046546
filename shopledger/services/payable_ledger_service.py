"""Payable Ledger - money owed, payments applied, reversals and overdue detection.

MONEY-CRITICAL: balance_due and status are never written directly. Every
path that changes total_amount_due or amount_paid goes through
``_apply_amounts``, which recomputes the balance and calls ``derive_status``.

State machine:
    open    -> paid     balance reaches zero
    open    -> overdue  mark_overdue() sweep, due_date < today
    overdue -> paid     balance reaches zero
    paid    -> open     balance becomes positive again (total raised, reversal)
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from shopledger.core.config import local_today, settings
from shopledger.core.exceptions import NotFoundError, ValidationError
from shopledger.core.money import quantize_money, to_decimal
from shopledger.db.session import atomic
from shopledger.models.payable import (
    AccountsPayable,
    PayableStatus,
    Payment,
    PaymentType,
    UNPAID_STATUSES,
)
from shopledger.services.supplier_directory import SupplierDirectory

logger = logging.getLogger(__name__)

PAYABLE_UPDATABLE_FIELDS = {
    "description", "supplier_id", "total_amount_due", "amount_paid", "due_date", "status",
}


def derive_status(
    total_amount_due: Decimal,
    amount_paid: Decimal,
    current: PayableStatus = PayableStatus.OPEN,
) -> PayableStatus:
    """Status implied by the balance.

    A settled balance is always ``paid``; a ``paid`` record with a positive
    balance drops back to ``open``; anything else keeps its current status.
    """
    balance = Decimal(total_amount_due) - Decimal(amount_paid)
    if balance <= 0:
        return PayableStatus.PAID
    if current == PayableStatus.PAID:
        return PayableStatus.OPEN
    return current


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}")
    raise ValidationError(f"{field} is required")


class PayableLedgerService:
    """Service for accounts payable and their payments."""

    def __init__(self, db: Session, record_reversals: Optional[bool] = None):
        self.db = db
        self.record_reversals = (
            settings.record_reversal_payments if record_reversals is None else record_reversals
        )
        self.directory = SupplierDirectory(db)

    # ===== QUERIES =====

    def get_payable(self, payable_id: int) -> AccountsPayable:
        payable = self.db.query(AccountsPayable).filter(AccountsPayable.id == payable_id).first()
        if not payable:
            raise NotFoundError("AccountsPayable", payable_id)
        return payable

    def list_payables(
        self,
        status: Optional[Union[PayableStatus, Sequence[PayableStatus]]] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        supplier_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[AccountsPayable]:
        """Payables ordered by due date, optionally filtered."""
        query = self._filtered(status, due_from, due_to, supplier_id)
        query = query.order_by(AccountsPayable.due_date.asc(), AccountsPayable.id.asc())
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count_payables(
        self,
        status: Optional[Union[PayableStatus, Sequence[PayableStatus]]] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        supplier_id: Optional[int] = None,
    ) -> int:
        return self._filtered(status, due_from, due_to, supplier_id).count()

    def _filtered(self, status, due_from, due_to, supplier_id):
        query = self.db.query(AccountsPayable)
        if status is not None:
            if isinstance(status, PayableStatus):
                query = query.filter(AccountsPayable.status == status)
            else:
                query = query.filter(AccountsPayable.status.in_(list(status)))
        if due_from:
            query = query.filter(AccountsPayable.due_date >= due_from)
        if due_to:
            query = query.filter(AccountsPayable.due_date <= due_to)
        if supplier_id:
            query = query.filter(AccountsPayable.supplier_id == supplier_id)
        return query

    def list_overdue(self, today: Optional[date] = None) -> List[AccountsPayable]:
        """Unpaid payables whose due date has passed."""
        today = today or local_today()
        return self.list_payables(status=UNPAID_STATUSES, due_to=today - timedelta(days=1))

    def list_due_within(self, days: int, today: Optional[date] = None) -> List[AccountsPayable]:
        """Open payables due between today and today + *days*, inclusive."""
        today = today or local_today()
        return self.list_payables(
            status=PayableStatus.OPEN,
            due_from=today,
            due_to=today + timedelta(days=days),
        )

    def list_payments(self, payable_id: int) -> List[Payment]:
        self.get_payable(payable_id)
        return (
            self.db.query(Payment)
            .filter(Payment.accounts_payable_id == payable_id)
            .order_by(Payment.id.asc())
            .all()
        )

    # ===== CREATE / UPDATE / DELETE =====

    def create_payable(
        self,
        description: str,
        total_amount_due: Any,
        due_date: Any,
        supplier_id: Optional[int] = None,
        amount_paid: Any = 0,
        status: Optional[PayableStatus] = None,
        created_by: Optional[int] = None,
    ) -> AccountsPayable:
        """Create a payable. Defaults to ``open`` with nothing paid."""
        if not description or not description.strip():
            raise ValidationError("Description is required")
        total = to_decimal(total_amount_due, "total_amount_due")
        if total <= 0:
            raise ValidationError("Total amount due must be greater than zero")
        due = _parse_date(due_date, "due_date")
        paid = to_decimal(amount_paid if amount_paid is not None else 0, "amount_paid")
        if paid < 0:
            raise ValidationError("Amount paid cannot be negative")
        if paid > total:
            raise ValidationError("Amount paid cannot exceed the total amount due")

        requested = PayableStatus(status) if status else PayableStatus.OPEN
        derived = derive_status(total, paid, requested)
        if status and derived != requested:
            raise ValidationError(
                f"Status '{requested.value}' contradicts the balance due of {total - paid}"
            )

        with atomic(self.db, "create payable"):
            if supplier_id:
                self.directory.require_supplier(supplier_id)
            payable = AccountsPayable(
                description=description.strip(),
                supplier_id=supplier_id,
                total_amount_due=quantize_money(total),
                amount_paid=quantize_money(paid),
                balance_due=quantize_money(total - paid),
                due_date=due,
                status=derived,
                paid_at=datetime.now(timezone.utc) if derived == PayableStatus.PAID else None,
                created_by=created_by,
            )
            self.db.add(payable)
            self.db.flush()
            if paid > 0:
                # Opening payment keeps amount_paid == sum(payments)
                self.db.add(Payment(
                    amount=quantize_money(paid),
                    payment_type=PaymentType.EXPENSE,
                    accounts_payable_id=payable.id,
                    description=f"Initial payment: {payable.description}",
                    recorded_by=created_by,
                ))

        logger.info(
            f"Created payable {payable.id} '{payable.description}' "
            f"total={payable.total_amount_due} due={payable.due_date} status={derived.value}"
        )
        return payable

    def update_payable(
        self,
        payable_id: int,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> AccountsPayable:
        """Apply a partial update, recomputing balance and status when amounts change.

        An explicit ``status`` must agree with the resulting balance.
        """
        unknown = set(updates) - PAYABLE_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with atomic(self.db, "update payable"):
            payable = self._lock_payable(payable_id)
            payable.check_version(expected_version)

            if "description" in updates:
                description = updates["description"]
                if not description or not str(description).strip():
                    raise ValidationError("Description is required")
                payable.description = str(description).strip()
            if "supplier_id" in updates:
                if updates["supplier_id"]:
                    self.directory.require_supplier(updates["supplier_id"])
                payable.supplier_id = updates["supplier_id"]
            if "due_date" in updates:
                payable.due_date = _parse_date(updates["due_date"], "due_date")

            total = Decimal(payable.total_amount_due)
            paid = Decimal(payable.amount_paid)
            if "total_amount_due" in updates:
                total = to_decimal(updates["total_amount_due"], "total_amount_due")
                if total <= 0:
                    raise ValidationError("Total amount due must be greater than zero")
            if "amount_paid" in updates:
                paid = to_decimal(updates["amount_paid"], "amount_paid")
                if paid < 0:
                    raise ValidationError("Amount paid cannot be negative")

            requested = PayableStatus(updates["status"]) if updates.get("status") else None
            delta = quantize_money(paid - Decimal(payable.amount_paid))
            self._apply_amounts(payable, total, paid, requested)
            payable.increment_version()
            if delta:
                self.db.add(Payment(
                    amount=delta,
                    payment_type=PaymentType.EXPENSE,
                    accounts_payable_id=payable.id,
                    description=f"Adjustment of amount paid: {payable.description}",
                ))

        if delta:
            logger.warning(f"Amount paid on payable {payable_id} adjusted by {delta}")
        return payable

    def delete_payable(self, payable_id: int) -> None:
        """Delete a payable that has never had money applied to it."""
        with atomic(self.db, "delete payable"):
            payable = self._lock_payable(payable_id)
            if Decimal(payable.amount_paid) > 0:
                raise ValidationError("Cannot delete a payable that has payments")
            has_history = (
                self.db.query(Payment.id)
                .filter(Payment.accounts_payable_id == payable_id)
                .first()
            )
            if has_history:
                raise ValidationError("Cannot delete a payable with payment history")
            self.db.delete(payable)
        logger.info(f"Deleted payable {payable_id}")

    # ===== PAYMENTS =====

    def register_payment(
        self,
        payable_id: int,
        amount: Any,
        payment_date: Optional[date] = None,
        recorded_by: Optional[int] = None,
    ) -> AccountsPayable:
        """Apply a payment. Overpayment and payments on paid records are refused."""
        value = to_decimal(amount, "amount")
        if value <= 0:
            raise ValidationError("Payment amount must be greater than zero")
        when = _parse_date(payment_date, "payment_date") if payment_date else local_today()

        with atomic(self.db, "register payment"):
            payable = self._lock_payable(payable_id)
            if payable.status == PayableStatus.PAID:
                raise ValidationError("This payable is already paid")

            new_paid = Decimal(payable.amount_paid) + value
            if new_paid > Decimal(payable.total_amount_due):
                raise ValidationError(
                    f"Payment of {value} exceeds the balance due of {payable.balance_due}"
                )

            self._apply_amounts(payable, Decimal(payable.total_amount_due), new_paid)
            payable.increment_version()
            self.db.add(Payment(
                amount=quantize_money(value),
                payment_date=when,
                payment_type=PaymentType.EXPENSE,
                accounts_payable_id=payable.id,
                description=f"Payment of payable: {payable.description}",
                recorded_by=recorded_by,
            ))

        logger.info(
            f"Payment {value} applied to payable {payable_id}: "
            f"balance={payable.balance_due} status={payable.status.value}"
        )
        return payable

    def reverse_payment(
        self,
        payable_id: int,
        amount: Any,
        recorded_by: Optional[int] = None,
    ) -> AccountsPayable:
        """Take back part of what was paid. Never lets amount_paid go below zero."""
        value = to_decimal(amount, "amount")
        if value <= 0:
            raise ValidationError("Reversal amount must be greater than zero")

        with atomic(self.db, "reverse payment"):
            payable = self._lock_payable(payable_id)
            if value > Decimal(payable.amount_paid):
                raise ValidationError(
                    f"Reversal of {value} exceeds the amount already paid ({payable.amount_paid})"
                )

            new_paid = Decimal(payable.amount_paid) - value
            self._apply_amounts(payable, Decimal(payable.total_amount_due), new_paid)
            payable.increment_version()
            if self.record_reversals:
                self.db.add(Payment(
                    amount=quantize_money(-value),
                    payment_type=PaymentType.EXPENSE,
                    accounts_payable_id=payable.id,
                    description=f"Reversal of payment: {payable.description}",
                    recorded_by=recorded_by,
                ))

        logger.warning(
            f"Reversed {value} on payable {payable_id}: "
            f"balance={payable.balance_due} status={payable.status.value}"
        )
        return payable

    # ===== OVERDUE SWEEP =====

    def mark_overdue(self, today: Optional[date] = None) -> int:
        """Flag every open payable past its due date as overdue.

        Idempotent: paid and already-overdue records are never touched.

        Returns:
            Number of payables flagged by this run
        """
        today = today or local_today()
        with atomic(self.db, "mark overdue payables"):
            affected = (
                self.db.query(AccountsPayable)
                .filter(
                    AccountsPayable.status == PayableStatus.OPEN,
                    AccountsPayable.due_date < today,
                )
                .update(
                    {
                        AccountsPayable.status: PayableStatus.OVERDUE,
                        AccountsPayable.version: AccountsPayable.version + 1,
                    },
                    synchronize_session="fetch",
                )
            )
        if affected:
            logger.info(f"Overdue sweep: {affected} payable(s) marked overdue (today={today})")
        else:
            logger.debug(f"Overdue sweep: nothing to mark (today={today})")
        return affected

    # ===== SUMMARIES =====

    def get_summary(
        self,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Totals over an optional due-date window plus the nearest upcoming dues."""
        today = today or local_today()
        payables = self.list_payables(due_from=due_from, due_to=due_to)

        unpaid = [p for p in payables if p.status in UNPAID_STATUSES]
        overdue = [p for p in unpaid if p.due_date < today]
        paid = [p for p in payables if p.status == PayableStatus.PAID]

        total_open = sum((Decimal(p.balance_due) for p in unpaid), Decimal("0"))
        total_overdue = sum((Decimal(p.balance_due) for p in overdue), Decimal("0"))
        total_paid = sum((Decimal(p.total_amount_due) for p in paid), Decimal("0"))

        upcoming = self.list_due_within(settings.upcoming_due_window_days, today=today)

        return {
            "total_open": quantize_money(total_open),
            "total_overdue": quantize_money(total_overdue),
            "total_paid": quantize_money(total_paid),
            "total_general": quantize_money(total_open + total_paid),
            "count_open": len(unpaid),
            "count_overdue": len(overdue),
            "count_paid": len(paid),
            "count_total": len(payables),
            "upcoming": upcoming[: settings.upcoming_due_limit],
        }

    def get_reminders(self, today: Optional[date] = None) -> Dict[str, List[AccountsPayable]]:
        """Due today, due tomorrow, due within 3 days (includes tomorrow) and overdue."""
        today = today or local_today()
        tomorrow = today + timedelta(days=1)
        return {
            "due_today": self.list_payables(status=UNPAID_STATUSES, due_from=today, due_to=today),
            "due_tomorrow": self.list_payables(status=UNPAID_STATUSES, due_from=tomorrow, due_to=tomorrow),
            "due_within_3_days": self.list_payables(
                status=UNPAID_STATUSES, due_from=today, due_to=today + timedelta(days=3)
            ),
            "overdue": self.list_overdue(today=today),
        }

    # ===== HELPERS =====

    def _lock_payable(self, payable_id: int) -> AccountsPayable:
        payable = (
            self.db.query(AccountsPayable)
            .filter(AccountsPayable.id == payable_id)
            .with_for_update()
            .first()
        )
        if not payable:
            raise NotFoundError("AccountsPayable", payable_id)
        return payable

    def _apply_amounts(
        self,
        payable: AccountsPayable,
        total: Decimal,
        paid: Decimal,
        requested_status: Optional[PayableStatus] = None,
    ) -> None:
        """Write amounts, balance and derived status together."""
        current = requested_status or payable.status
        status = derive_status(total, paid, current)
        if requested_status and status != requested_status:
            raise ValidationError(
                f"Status '{requested_status.value}' contradicts the balance due of {total - paid}"
            )

        previous = payable.status
        payable.total_amount_due = quantize_money(total)
        payable.amount_paid = quantize_money(paid)
        payable.balance_due = quantize_money(total - paid)
        payable.status = status

        if status == PayableStatus.PAID and previous != PayableStatus.PAID:
            payable.paid_at = datetime.now(timezone.utc)
        elif status != PayableStatus.PAID:
            payable.paid_at = None

        if status != previous:
            logger.info(f"Payable {payable.id}: {previous.value} -> {status.value}")
