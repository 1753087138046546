"""Purchase order routes: orders, items, receiving and quality control."""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from shopledger.core.rate_limit import limiter
from shopledger.core.responses import list_response
from shopledger.core.validators import PositiveIntId
from shopledger.db.session import DbSession
from shopledger.models.purchase_order import POStatus
from shopledger.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemResponse,
    PurchaseOrderItemUpdate,
    PurchaseOrderResponse,
    PurchaseOrderUpdate,
    QualityControlCreate,
    QualityControlResponse,
    ReceiptResponse,
    ReceiveItemsRequest,
    StatusChangeRequest,
)
from shopledger.services.purchase_order_service import PurchaseOrderService
from shopledger.services.quality_control_service import QualityControlService


router = APIRouter()


# ==================== ORDERS ====================

@router.get("")
@limiter.limit("60/minute")
def list_purchase_orders(
    request: Request,
    db: DbSession,
    status_filter: Optional[POStatus] = Query(None, alias="status"),
    supplier_id: Optional[int] = Query(None, gt=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List purchase orders, newest first."""
    orders = PurchaseOrderService(db).list_purchase_orders(
        status=status_filter, supplier_id=supplier_id, limit=limit
    )
    return list_response([PurchaseOrderResponse.model_validate(o) for o in orders])


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_purchase_order(request: Request, db: DbSession, data: PurchaseOrderCreate):
    """Create a purchase order together with its items (all or nothing)."""
    header = data.model_dump(exclude={"items"})
    items = [item.model_dump() for item in data.items]
    return PurchaseOrderService(db).create_complete_purchase_order(header, items)


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
@limiter.limit("60/minute")
def get_purchase_order(request: Request, order_id: PositiveIntId, db: DbSession):
    return PurchaseOrderService(db).get_purchase_order(order_id)


@router.patch("/{order_id}", response_model=PurchaseOrderResponse)
@limiter.limit("30/minute")
def update_purchase_order(
    request: Request, order_id: PositiveIntId, db: DbSession, data: PurchaseOrderUpdate
):
    updates = data.model_dump(exclude_unset=True)
    expected_version = updates.pop("expected_version", None)
    service = PurchaseOrderService(db)
    service.update_purchase_order(order_id, updates, expected_version=expected_version)
    return service.get_purchase_order(order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_purchase_order(request: Request, order_id: PositiveIntId, db: DbSession):
    PurchaseOrderService(db).delete_purchase_order(order_id)


# ==================== STATUS ====================

@router.post("/{order_id}/send", response_model=PurchaseOrderResponse)
@limiter.limit("30/minute")
def send_purchase_order(
    request: Request, order_id: PositiveIntId, db: DbSession,
    data: Optional[StatusChangeRequest] = None,
):
    """Mark a draft order as sent to the supplier."""
    service = PurchaseOrderService(db)
    service.send(order_id, expected_version=data.expected_version if data else None)
    return service.get_purchase_order(order_id)


@router.post("/{order_id}/approve", response_model=PurchaseOrderResponse)
@limiter.limit("30/minute")
def approve_purchase_order(
    request: Request, order_id: PositiveIntId, db: DbSession,
    data: Optional[StatusChangeRequest] = None,
):
    service = PurchaseOrderService(db)
    service.approve(order_id, expected_version=data.expected_version if data else None)
    return service.get_purchase_order(order_id)


@router.post("/{order_id}/cancel", response_model=PurchaseOrderResponse)
@limiter.limit("30/minute")
def cancel_purchase_order(
    request: Request, order_id: PositiveIntId, db: DbSession,
    data: Optional[StatusChangeRequest] = None,
):
    service = PurchaseOrderService(db)
    service.cancel(order_id, expected_version=data.expected_version if data else None)
    return service.get_purchase_order(order_id)


# ==================== RECEIVING ====================

@router.post("/{order_id}/receive", response_model=ReceiptResponse)
@limiter.limit("30/minute")
def receive_items(
    request: Request, order_id: PositiveIntId, db: DbSession, data: ReceiveItemsRequest
):
    """Record received quantities. The order is marked received once complete."""
    result = PurchaseOrderService(db).receive_items(
        order_id, [item.model_dump() for item in data.items]
    )
    return ReceiptResponse.model_validate(result)


# ==================== ITEMS ====================

@router.post(
    "/{order_id}/items",
    response_model=PurchaseOrderItemResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def add_item(
    request: Request, order_id: PositiveIntId, db: DbSession, data: PurchaseOrderItemCreate
):
    return PurchaseOrderService(db).add_item(
        order_id,
        product_id=data.product_id,
        quantity_ordered=data.quantity_ordered,
        unit_price=data.unit_price,
    )


@router.patch("/items/{item_id}", response_model=PurchaseOrderItemResponse)
@limiter.limit("30/minute")
def update_item(
    request: Request, item_id: PositiveIntId, db: DbSession, data: PurchaseOrderItemUpdate
):
    return PurchaseOrderService(db).update_item(item_id, data.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def remove_item(request: Request, item_id: PositiveIntId, db: DbSession):
    PurchaseOrderService(db).remove_item(item_id)


# ==================== QUALITY CONTROL ====================

@router.post(
    "/items/{item_id}/quality-control",
    response_model=QualityControlResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def perform_quality_control(
    request: Request, item_id: PositiveIntId, db: DbSession, data: QualityControlCreate
):
    """Inspect a received item; approved units are credited to stock."""
    return QualityControlService(db).perform_quality_control(
        item_id,
        inspector_id=data.inspector_id,
        approved_quantity=data.approved_quantity,
        rejected_quantity=data.rejected_quantity,
        notes=data.notes,
        defects_found=data.defects_found,
    )


@router.get("/items/{item_id}/quality-control")
@limiter.limit("60/minute")
def list_inspections(request: Request, item_id: PositiveIntId, db: DbSession):
    records = QualityControlService(db).list_inspections(item_id)
    return list_response([QualityControlResponse.model_validate(r) for r in records])
