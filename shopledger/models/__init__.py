"""SQLAlchemy models."""

from shopledger.models.supplier import Supplier
from shopledger.models.product import Product
from shopledger.models.stock import StockMovement, MovementType
from shopledger.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderItem,
    QualityControlRecord,
    POStatus,
    QualityControlStatus,
)
from shopledger.models.payable import (
    AccountsPayable,
    Payment,
    PayableStatus,
    PaymentType,
)

__all__ = [
    "Supplier",
    "Product",
    "StockMovement",
    "MovementType",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "QualityControlRecord",
    "POStatus",
    "QualityControlStatus",
    "AccountsPayable",
    "Payment",
    "PayableStatus",
    "PaymentType",
]
