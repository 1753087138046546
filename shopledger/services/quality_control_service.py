"""Quality Control Inspector - partitions received goods into approved and rejected.

Each inspection appends a QualityControlRecord, overwrites the item's
quantity_approved with the new approved quantity and credits stock for it.
The three writes share one transaction.

There is no debit path: rejecting goods after their stock was credited is
not modeled here.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from shopledger.core.exceptions import NotFoundError, ValidationError
from shopledger.core.money import to_decimal
from shopledger.db.session import atomic
from shopledger.models.purchase_order import (
    POStatus,
    PurchaseOrderItem,
    QualityControlRecord,
    QualityControlStatus,
)
from shopledger.services.purchase_order_service import ReceivingPolicy
from shopledger.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

STOCK_CREDIT_REASON = "approved receipt from purchase order"


def derive_inspection_status(approved: Decimal, rejected: Decimal) -> QualityControlStatus:
    """Status of one inspection pass from its approved/rejected split."""
    if rejected > 0:
        return QualityControlStatus.PARTIAL if approved > 0 else QualityControlStatus.REJECTED
    return QualityControlStatus.APPROVED


class QualityControlService:
    """Records inspections of received purchase order items."""

    def __init__(
        self,
        db: Session,
        stock_ledger: Optional[StockLedger] = None,
        policy: Optional[ReceivingPolicy] = None,
    ):
        self.db = db
        self.stock_ledger = stock_ledger or StockLedger(db)
        self.policy = policy or ReceivingPolicy.from_settings()

    def perform_quality_control(
        self,
        item_id: int,
        inspector_id: int,
        approved_quantity: Any,
        rejected_quantity: Any,
        notes: Optional[str] = None,
        defects_found: Optional[str] = None,
    ) -> QualityControlRecord:
        """Inspect a received item.

        Args:
            item_id: Purchase order item being inspected
            inspector_id: User performing the inspection
            approved_quantity: Units accepted; replaces the item's quantity_approved
            rejected_quantity: Units refused
            notes: Free-form inspection notes
            defects_found: Description of defects

        Returns:
            The new inspection record

        Raises:
            NotFoundError: unknown item
            ValidationError: negative/zero quantities, cancelled order, or an
                approval above the received quantity under the strict policy
            StockError: the stock ledger refused the credit
        """
        approved = to_decimal(approved_quantity, "approved_quantity")
        rejected = to_decimal(rejected_quantity, "rejected_quantity")
        if approved < 0 or rejected < 0:
            raise ValidationError("Inspected quantities cannot be negative")
        if approved == 0 and rejected == 0:
            raise ValidationError("An inspection must approve or reject at least one unit")
        if not inspector_id:
            raise ValidationError("inspector_id is required")

        with atomic(self.db, "record quality control"):
            item = (
                self.db.query(PurchaseOrderItem)
                .filter(PurchaseOrderItem.id == item_id)
                .with_for_update()
                .first()
            )
            if not item:
                raise NotFoundError("PurchaseOrderItem", item_id)
            if item.purchase_order.status == POStatus.CANCELLED:
                raise ValidationError(
                    f"Cannot inspect items of cancelled purchase order "
                    f"{item.purchase_order.display_number}"
                )
            self.policy.check_inspected(item, approved, rejected)

            status = derive_inspection_status(approved, rejected)
            record = QualityControlRecord(
                purchase_order_item_id=item.id,
                inspector_id=inspector_id,
                status=status,
                approved_quantity=approved,
                rejected_quantity=rejected,
                notes=notes,
                defects_found=defects_found,
            )
            self.db.add(record)

            item.quantity_approved = approved

            if approved > 0:
                self.stock_ledger.credit(
                    item.product_id,
                    approved,
                    STOCK_CREDIT_REASON,
                    ref_type="purchase_order_item",
                    ref_id=item.id,
                    created_by=inspector_id,
                )
            self.db.flush()

        logger.info(
            f"Quality control on item {item_id}: {status.value} "
            f"(approved={approved}, rejected={rejected}, inspector={inspector_id})"
        )
        return record

    def list_inspections(self, item_id: int) -> List[QualityControlRecord]:
        """Inspection history of an item, newest first."""
        exists = self.db.query(PurchaseOrderItem.id).filter(PurchaseOrderItem.id == item_id).first()
        if not exists:
            raise NotFoundError("PurchaseOrderItem", item_id)
        return (
            self.db.query(QualityControlRecord)
            .filter(QualityControlRecord.purchase_order_item_id == item_id)
            .order_by(QualityControlRecord.id.desc())
            .all()
        )
