"""Accounts payable schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from shopledger.models.payable import PayableStatus, PaymentType


class PayableCreate(BaseModel):
    """Payable creation schema."""

    description: str = Field(..., max_length=500)
    total_amount_due: Decimal
    due_date: date
    supplier_id: Optional[int] = None
    amount_paid: Decimal = Decimal("0")
    status: Optional[PayableStatus] = None
    created_by: Optional[int] = None


class PayableUpdate(BaseModel):
    """Partial payable update. Balance and status follow the amounts."""

    description: Optional[str] = Field(default=None, max_length=500)
    total_amount_due: Optional[Decimal] = None
    amount_paid: Optional[Decimal] = None
    due_date: Optional[date] = None
    supplier_id: Optional[int] = None
    status: Optional[PayableStatus] = None
    expected_version: Optional[int] = None


class PaymentCreate(BaseModel):
    amount: Decimal
    payment_date: Optional[date] = None
    recorded_by: Optional[int] = None


class ReversalCreate(BaseModel):
    amount: Decimal
    recorded_by: Optional[int] = None


class PayableResponse(BaseModel):
    """Payable response schema."""

    id: int
    description: str
    supplier_id: Optional[int] = None
    total_amount_due: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    due_date: date
    status: PayableStatus
    paid_at: Optional[datetime] = None
    created_by: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: int
    accounts_payable_id: int
    amount: Decimal
    payment_date: date
    payment_type: PaymentType
    description: Optional[str] = None
    recorded_by: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PayableSummaryResponse(BaseModel):
    """Totals over a due-date window. "open" counts every unpaid record."""

    total_open: Decimal
    total_overdue: Decimal
    total_paid: Decimal
    total_general: Decimal
    count_open: int
    count_overdue: int
    count_paid: int
    count_total: int
    upcoming: List[PayableResponse] = []


class RemindersResponse(BaseModel):
    due_today: List[PayableResponse] = []
    due_tomorrow: List[PayableResponse] = []
    due_within_3_days: List[PayableResponse] = []
    overdue: List[PayableResponse] = []


class MarkOverdueResponse(BaseModel):
    marked: int
