"""Report schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class SupplierPayablesRow(BaseModel):
    supplier_id: Optional[int] = None
    supplier_name: str
    count: int
    total_open: Decimal
    total_overdue: Decimal


class PurchaseOrderStatsResponse(BaseModel):
    total: int
    pending: int
    received: int
    cancelled: int
    overdue: int
    total_amount: Decimal
    pending_amount: Decimal


class SupplierPaymentPerformanceRow(BaseModel):
    """Payment punctuality for one supplier."""

    supplier_id: int
    supplier_name: str
    payables: int
    total_spent: Decimal
    paid_on_time: int
    paid_late: int
    unpaid: int
    on_time_rate: Optional[float] = None
