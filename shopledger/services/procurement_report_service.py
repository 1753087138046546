"""Read-only procurement and payables rollups."""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from shopledger.core.config import local_today
from shopledger.core.exceptions import ValidationError
from shopledger.core.money import quantize_money
from shopledger.models.payable import AccountsPayable, PayableStatus, UNPAID_STATUSES
from shopledger.models.purchase_order import PENDING_STATUSES, POStatus, PurchaseOrder
from shopledger.models.supplier import Supplier

logger = logging.getLogger(__name__)

NO_SUPPLIER = "No supplier"


def _money(value: Any) -> Decimal:
    return quantize_money(Decimal(str(value or 0)))


class ProcurementReportService:
    """Aggregates over purchase orders and payables. Never writes."""

    def __init__(self, db: Session):
        self.db = db

    def payables_by_supplier(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Unpaid balances per supplier, largest first.

        ``total_overdue`` covers the part already past its due date.
        """
        today = today or local_today()
        overdue_balance = case(
            (AccountsPayable.due_date < today, AccountsPayable.balance_due),
            else_=0,
        )
        rows = (
            self.db.query(
                AccountsPayable.supplier_id,
                Supplier.name,
                func.count(AccountsPayable.id),
                func.sum(AccountsPayable.balance_due),
                func.sum(overdue_balance),
            )
            .outerjoin(Supplier, Supplier.id == AccountsPayable.supplier_id)
            .filter(AccountsPayable.status.in_(UNPAID_STATUSES))
            .group_by(AccountsPayable.supplier_id, Supplier.name)
            .all()
        )
        result = [
            {
                "supplier_id": supplier_id,
                "supplier_name": name or NO_SUPPLIER,
                "count": count,
                "total_open": _money(open_total),
                "total_overdue": _money(overdue_total),
            }
            for supplier_id, name, count, open_total, overdue_total in rows
        ]
        result.sort(key=lambda row: row["total_open"], reverse=True)
        return result

    def overdue_purchase_orders(self, today: Optional[date] = None) -> List[PurchaseOrder]:
        """Sent or approved orders whose expected delivery date has passed, oldest first."""
        today = today or local_today()
        return (
            self.db.query(PurchaseOrder)
            .filter(
                PurchaseOrder.status.in_([POStatus.SENT, POStatus.APPROVED]),
                PurchaseOrder.expected_delivery_date.isnot(None),
                PurchaseOrder.expected_delivery_date < today,
            )
            .order_by(PurchaseOrder.expected_delivery_date.asc(), PurchaseOrder.id.asc())
            .all()
        )

    def purchase_order_stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or local_today()
        counts = dict(
            self.db.query(PurchaseOrder.status, func.count(PurchaseOrder.id))
            .group_by(PurchaseOrder.status)
            .all()
        )
        total_amount = self.db.query(func.sum(PurchaseOrder.total_amount)).scalar()
        overdue = (
            self.db.query(func.count(PurchaseOrder.id))
            .filter(
                PurchaseOrder.status.in_(PENDING_STATUSES),
                PurchaseOrder.expected_delivery_date < today,
            )
            .scalar()
        )
        pending_amount = (
            self.db.query(func.sum(PurchaseOrder.total_amount))
            .filter(PurchaseOrder.status.in_(PENDING_STATUSES))
            .scalar()
        )
        return {
            "total": sum(counts.values()),
            "pending": sum(counts.get(status, 0) for status in PENDING_STATUSES),
            "received": counts.get(POStatus.RECEIVED, 0),
            "cancelled": counts.get(POStatus.CANCELLED, 0),
            "overdue": overdue,  # drafts included, unlike overdue_purchase_orders
            "total_amount": _money(total_amount),
            "pending_amount": _money(pending_amount),
        }

    def supplier_payment_performance(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Per supplier: payables created in [start, end], spend and on-time ratio.

        A paid payable is on time when it was settled on or before its due date.
        """
        if start and end and start > end:
            raise ValidationError("start must not be after end")

        query = self.db.query(AccountsPayable).filter(AccountsPayable.supplier_id.isnot(None))
        if start:
            query = query.filter(AccountsPayable.created_at >= datetime.combine(start, time.min))
        if end:
            query = query.filter(AccountsPayable.created_at < datetime.combine(end + timedelta(days=1), time.min))

        stats: Dict[int, Dict[str, Any]] = {}
        for payable in query.all():
            row = stats.setdefault(payable.supplier_id, {
                "supplier_id": payable.supplier_id,
                "supplier_name": payable.supplier.name if payable.supplier else NO_SUPPLIER,
                "payables": 0,
                "total_spent": Decimal("0"),
                "paid_on_time": 0,
                "paid_late": 0,
                "unpaid": 0,
            })
            row["payables"] += 1
            row["total_spent"] += Decimal(payable.amount_paid)
            if payable.status != PayableStatus.PAID:
                row["unpaid"] += 1
            elif payable.paid_at and payable.paid_at.date() <= payable.due_date:
                row["paid_on_time"] += 1
            else:
                row["paid_late"] += 1

        result = []
        for row in stats.values():
            settled = row["paid_on_time"] + row["paid_late"]
            row["total_spent"] = _money(row["total_spent"])
            row["on_time_rate"] = round(row["paid_on_time"] / settled, 4) if settled else None
            result.append(row)
        result.sort(key=lambda row: row["total_spent"], reverse=True)
        logger.debug(f"Supplier payment performance computed for {len(result)} supplier(s)")
        return result
