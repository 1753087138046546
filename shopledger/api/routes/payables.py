"""Accounts payable routes: payables, payments, reversals and the overdue sweep."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from shopledger.core.rate_limit import limiter
from shopledger.core.responses import paginated_response, list_response
from shopledger.core.validators import PositiveIntId
from shopledger.db.session import DbSession
from shopledger.models.payable import PayableStatus
from shopledger.schemas.payable import (
    MarkOverdueResponse,
    PayableCreate,
    PayableResponse,
    PayableSummaryResponse,
    PayableUpdate,
    PaymentCreate,
    PaymentResponse,
    RemindersResponse,
    ReversalCreate,
)
from shopledger.services.payable_ledger_service import PayableLedgerService
from shopledger.services.scheduler_service import scheduler

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== OVERVIEW ====================

@router.get("/summary", response_model=PayableSummaryResponse)
@limiter.limit("60/minute")
def get_summary(
    request: Request,
    db: DbSession,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
):
    """Open, overdue and paid totals over an optional due-date window."""
    return PayableLedgerService(db).get_summary(due_from=due_from, due_to=due_to)


@router.get("/reminders", response_model=RemindersResponse)
@limiter.limit("60/minute")
def get_reminders(request: Request, db: DbSession):
    return PayableLedgerService(db).get_reminders()


@router.post("/mark-overdue", response_model=MarkOverdueResponse)
@limiter.limit("10/minute")
def mark_overdue(request: Request, db: DbSession):
    """Run the overdue sweep now."""
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Manual overdue sweep requested by {client_host}")
    marked = PayableLedgerService(db).mark_overdue()
    return {"marked": marked}


@router.get("/scheduler-status")
@limiter.limit("30/minute")
def scheduler_status(request: Request):
    """Background overdue sweep status."""
    return {"running": scheduler.running, "tasks": scheduler.get_status()}


# ==================== CRUD ====================

@router.get("")
@limiter.limit("60/minute")
def list_payables(
    request: Request,
    db: DbSession,
    status_filter: Optional[PayableStatus] = Query(None, alias="status"),
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
    supplier_id: Optional[int] = Query(None, gt=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List payables ordered by due date."""
    service = PayableLedgerService(db)
    filters = dict(status=status_filter, due_from=due_from, due_to=due_to, supplier_id=supplier_id)
    total = service.count_payables(**filters)
    payables = service.list_payables(**filters, limit=limit, offset=skip)
    return paginated_response(
        [PayableResponse.model_validate(p) for p in payables], total=total, skip=skip, limit=limit
    )


@router.post("", response_model=PayableResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_payable(request: Request, db: DbSession, data: PayableCreate):
    return PayableLedgerService(db).create_payable(**data.model_dump())


@router.get("/{payable_id}", response_model=PayableResponse)
@limiter.limit("60/minute")
def get_payable(request: Request, payable_id: PositiveIntId, db: DbSession):
    return PayableLedgerService(db).get_payable(payable_id)


@router.patch("/{payable_id}", response_model=PayableResponse)
@limiter.limit("30/minute")
def update_payable(request: Request, payable_id: PositiveIntId, db: DbSession, data: PayableUpdate):
    updates = data.model_dump(exclude_unset=True)
    expected_version = updates.pop("expected_version", None)
    return PayableLedgerService(db).update_payable(
        payable_id, updates, expected_version=expected_version
    )


@router.delete("/{payable_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_payable(request: Request, payable_id: PositiveIntId, db: DbSession):
    PayableLedgerService(db).delete_payable(payable_id)


# ==================== PAYMENTS ====================

@router.post("/{payable_id}/payments", response_model=PayableResponse)
@limiter.limit("30/minute")
def register_payment(request: Request, payable_id: PositiveIntId, db: DbSession, data: PaymentCreate):
    """Apply a payment. Returns the payable with its new balance."""
    return PayableLedgerService(db).register_payment(
        payable_id, data.amount, payment_date=data.payment_date, recorded_by=data.recorded_by
    )


@router.get("/{payable_id}/payments")
@limiter.limit("60/minute")
def list_payments(request: Request, payable_id: PositiveIntId, db: DbSession):
    payments = PayableLedgerService(db).list_payments(payable_id)
    return list_response([PaymentResponse.model_validate(p) for p in payments])


@router.post("/{payable_id}/reversals", response_model=PayableResponse)
@limiter.limit("10/minute")
def reverse_payment(request: Request, payable_id: PositiveIntId, db: DbSession, data: ReversalCreate):
    return PayableLedgerService(db).reverse_payment(
        payable_id, data.amount, recorded_by=data.recorded_by
    )
