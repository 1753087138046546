"""Purchase order schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from shopledger.models.purchase_order import POStatus, QualityControlStatus


class PurchaseOrderItemCreate(BaseModel):
    """Line item for a new or existing purchase order."""

    product_id: int
    quantity_ordered: Decimal
    unit_price: Decimal


class PurchaseOrderItemUpdate(BaseModel):
    """Partial line item update. Only fields sent are applied."""

    product_id: Optional[int] = None
    quantity_ordered: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    quantity_received: Optional[Decimal] = None
    quantity_approved: Optional[Decimal] = None


class PurchaseOrderCreate(BaseModel):
    """Purchase order creation schema, optionally with its items."""

    supplier_id: int
    expected_delivery_date: Optional[date] = None
    order_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: Optional[int] = None
    items: List[PurchaseOrderItemCreate] = []


class PurchaseOrderUpdate(BaseModel):
    """Purchase order header update schema."""

    supplier_id: Optional[int] = None
    expected_delivery_date: Optional[date] = None
    order_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    expected_version: Optional[int] = None


class StatusChangeRequest(BaseModel):
    expected_version: Optional[int] = None


class ReceivedItem(BaseModel):
    item_id: int
    quantity_received: Decimal


class ReceiveItemsRequest(BaseModel):
    """Absolute received quantities per item."""

    items: List[ReceivedItem]


class QualityControlCreate(BaseModel):
    """Inspection of a received item."""

    inspector_id: int
    approved_quantity: Decimal
    rejected_quantity: Decimal = Decimal("0")
    notes: Optional[str] = None
    defects_found: Optional[str] = None


class QualityControlResponse(BaseModel):
    id: int
    purchase_order_item_id: int
    inspector_id: int
    inspection_date: datetime
    status: QualityControlStatus
    approved_quantity: Decimal
    rejected_quantity: Decimal
    notes: Optional[str] = None
    defects_found: Optional[str] = None

    model_config = {"from_attributes": True}


class PurchaseOrderItemResponse(BaseModel):
    id: int
    purchase_order_id: int
    product_id: int
    quantity_ordered: Decimal
    quantity_received: Decimal
    quantity_approved: Decimal
    quantity_outstanding: Decimal
    unit_price: Decimal
    subtotal: Decimal

    model_config = {"from_attributes": True}


class PurchaseOrderResponse(BaseModel):
    """Purchase order response schema."""

    id: int
    display_number: str
    supplier_id: int
    status: POStatus
    order_date: date
    expected_delivery_date: Optional[date] = None
    total_amount: Decimal
    notes: Optional[str] = None
    created_by: Optional[int] = None
    sent_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime
    items: List[PurchaseOrderItemResponse] = []

    model_config = {"from_attributes": True}


class ReceiptResponse(BaseModel):
    order: PurchaseOrderResponse
    fully_received: bool
    outstanding: Dict[int, Decimal] = {}

    model_config = {"from_attributes": True}
