"""Stock routes: on-hand level and movement history per product."""

from fastapi import APIRouter, Query, Request

from shopledger.core.rate_limit import limiter
from shopledger.core.responses import list_response
from shopledger.core.validators import PositiveIntId
from shopledger.db.session import DbSession
from shopledger.schemas.stock import StockMovementResponse
from shopledger.schemas.supplier import ProductResponse
from shopledger.services.stock_ledger import StockLedger
from shopledger.services.supplier_directory import SupplierDirectory

router = APIRouter()


@router.get("/products/{product_id}", response_model=ProductResponse)
@limiter.limit("60/minute")
def get_product_stock(request: Request, product_id: PositiveIntId, db: DbSession):
    return SupplierDirectory(db).require_product(product_id)


@router.get("/products/{product_id}/movements")
@limiter.limit("60/minute")
def get_movements(
    request: Request,
    product_id: PositiveIntId,
    db: DbSession,
    limit: int = Query(50, ge=1, le=500),
):
    """Stock movements of a product, newest first."""
    SupplierDirectory(db).require_product(product_id)
    movements = StockLedger(db).get_movements(product_id, limit=limit)
    return list_response([StockMovementResponse.model_validate(m) for m in movements])
