"""API routes."""

from fastapi import APIRouter

from shopledger.api.routes import purchase_orders, payables, suppliers, stock, reports

api_router = APIRouter()

# Procurement
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])

# Payables
api_router.include_router(payables.router, prefix="/payables", tags=["payables"])

# Reports
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
