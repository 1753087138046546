"""Supplier directory routes (read-only)."""

from fastapi import APIRouter, Query, Request

from shopledger.core.rate_limit import limiter
from shopledger.core.responses import list_response
from shopledger.core.validators import PositiveIntId
from shopledger.db.session import DbSession
from shopledger.schemas.supplier import SupplierResponse
from shopledger.services.supplier_directory import SupplierDirectory

router = APIRouter()


@router.get("")
@limiter.limit("60/minute")
def list_suppliers(request: Request, db: DbSession, active_only: bool = False):
    """List suppliers by name."""
    suppliers = SupplierDirectory(db).list_suppliers(active_only=active_only)
    return list_response([SupplierResponse.model_validate(s) for s in suppliers])


@router.get("/search")
@limiter.limit("60/minute")
def search_suppliers(request: Request, db: DbSession, q: str = Query(..., min_length=1, max_length=100)):
    suppliers = SupplierDirectory(db).search_suppliers(q)
    return list_response([SupplierResponse.model_validate(s) for s in suppliers])


@router.get("/{supplier_id}", response_model=SupplierResponse)
@limiter.limit("60/minute")
def get_supplier(request: Request, supplier_id: PositiveIntId, db: DbSession):
    return SupplierDirectory(db).require_supplier(supplier_id)
