"""Procurement and payables report routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Request

from shopledger.core.rate_limit import limiter
from shopledger.core.responses import list_response
from shopledger.db.session import DbSession
from shopledger.schemas.purchase_order import PurchaseOrderResponse
from shopledger.schemas.report import (
    PurchaseOrderStatsResponse,
    SupplierPaymentPerformanceRow,
    SupplierPayablesRow,
)
from shopledger.services.procurement_report_service import ProcurementReportService

router = APIRouter()


@router.get("/payables-by-supplier")
@limiter.limit("30/minute")
def payables_by_supplier(request: Request, db: DbSession):
    """Unpaid balances grouped by supplier."""
    rows = ProcurementReportService(db).payables_by_supplier()
    return list_response([SupplierPayablesRow(**row) for row in rows])


@router.get("/overdue-purchase-orders")
@limiter.limit("30/minute")
def overdue_purchase_orders(request: Request, db: DbSession):
    orders = ProcurementReportService(db).overdue_purchase_orders()
    return list_response([PurchaseOrderResponse.model_validate(o) for o in orders])


@router.get("/purchase-order-stats", response_model=PurchaseOrderStatsResponse)
@limiter.limit("30/minute")
def purchase_order_stats(request: Request, db: DbSession):
    return ProcurementReportService(db).purchase_order_stats()


@router.get("/supplier-payment-performance")
@limiter.limit("30/minute")
def supplier_payment_performance(
    request: Request,
    db: DbSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    """On-time payment record per supplier for payables created in [start, end]."""
    rows = ProcurementReportService(db).supplier_payment_performance(start=start, end=end)
    return list_response([SupplierPaymentPerformanceRow(**row) for row in rows])
