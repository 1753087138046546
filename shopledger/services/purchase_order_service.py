"""Purchase Order Engine - orders, line items, totals and receiving.

Every mutation of an item recomputes the parent order's total_amount inside
the same transaction, so ``order.total_amount == sum(item.subtotal)`` holds
after each committed operation.

Flow:
1. create_purchase_order / create_complete_purchase_order (draft)
2. add_item / update_item / remove_item (total recomputed each time)
3. send -> approve
4. receive_items records received quantities; order becomes ``received``
   once every item is fully received
5. Quality control (see quality_control_service) credits approved stock
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from shopledger.core.config import settings
from shopledger.core.exceptions import NotFoundError, ValidationError
from shopledger.core.money import quantize_money, to_decimal
from shopledger.db.session import atomic
from shopledger.models.purchase_order import (
    POStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    TERMINAL_STATUSES,
)
from shopledger.services.supplier_directory import SupplierDirectory

logger = logging.getLogger(__name__)

# Allowed manual status transitions. RECEIVED is reached only via receive_items.
STATUS_TRANSITIONS = {
    POStatus.DRAFT: {POStatus.SENT, POStatus.APPROVED, POStatus.CANCELLED},
    POStatus.SENT: {POStatus.APPROVED, POStatus.CANCELLED},
    POStatus.APPROVED: {POStatus.CANCELLED},
    POStatus.RECEIVED: set(),
    POStatus.CANCELLED: set(),
}

ORDER_UPDATABLE_FIELDS = {"supplier_id", "expected_delivery_date", "order_date", "notes"}
ITEM_UPDATABLE_FIELDS = {
    "product_id", "quantity_ordered", "unit_price", "quantity_received", "quantity_approved",
}


@dataclass(frozen=True)
class ReceivingPolicy:
    """Bounds applied to received and approved quantities.

    By default received may not exceed ordered and approved may not exceed
    received. Either bound can be lifted, e.g. to record supplier overshipment.
    """

    allow_over_receipt: bool = False
    allow_over_approval: bool = False

    @classmethod
    def from_settings(cls) -> "ReceivingPolicy":
        return cls(
            allow_over_receipt=settings.allow_over_receipt,
            allow_over_approval=settings.allow_over_approval,
        )

    def check_received(self, item: PurchaseOrderItem, quantity_received: Decimal) -> None:
        if quantity_received < 0:
            raise ValidationError("Received quantity cannot be negative")
        if not self.allow_over_receipt and quantity_received > Decimal(item.quantity_ordered):
            raise ValidationError(
                f"Received quantity {quantity_received} exceeds ordered quantity "
                f"{item.quantity_ordered} for item {item.id}"
            )
        if not self.allow_over_approval and quantity_received < Decimal(item.quantity_approved or 0):
            raise ValidationError(
                f"Received quantity {quantity_received} is below the approved quantity "
                f"{item.quantity_approved} for item {item.id}"
            )

    def check_approved(self, item: PurchaseOrderItem, quantity_approved: Decimal) -> None:
        if quantity_approved < 0:
            raise ValidationError("Approved quantity cannot be negative")
        if not self.allow_over_approval and quantity_approved > Decimal(item.quantity_received or 0):
            raise ValidationError(
                f"Approved quantity {quantity_approved} exceeds received quantity "
                f"{item.quantity_received} for item {item.id}"
            )

    def check_inspected(self, item: PurchaseOrderItem, approved: Decimal, rejected: Decimal) -> None:
        """Approved and rejected together partition at most the received quantity."""
        self.check_approved(item, approved)
        received = Decimal(item.quantity_received or 0)
        if not self.allow_over_approval and approved + rejected > received:
            raise ValidationError(
                f"Inspected quantity {approved + rejected} exceeds received quantity "
                f"{item.quantity_received} for item {item.id}"
            )

    def check_quantities(
        self, item: PurchaseOrderItem, ordered: Decimal, received: Decimal, approved: Decimal
    ) -> None:
        """Validate an item's ordered/received/approved quantities as a whole."""
        if received < 0:
            raise ValidationError("Received quantity cannot be negative")
        if approved < 0:
            raise ValidationError("Approved quantity cannot be negative")
        if not self.allow_over_receipt and received > ordered:
            raise ValidationError(
                f"Received quantity {received} exceeds ordered quantity {ordered} for item {item.id}"
            )
        if not self.allow_over_approval and approved > received:
            raise ValidationError(
                f"Approved quantity {approved} exceeds received quantity {received} for item {item.id}"
            )


@dataclass
class ReceiptResult:
    """Outcome of a receive_items call."""

    order: PurchaseOrder
    fully_received: bool
    outstanding: Dict[int, Decimal] = field(default_factory=dict)


class PurchaseOrderService:
    """Service for the purchase order lifecycle."""

    def __init__(self, db: Session, policy: Optional[ReceivingPolicy] = None):
        self.db = db
        self.policy = policy or ReceivingPolicy.from_settings()
        self.directory = SupplierDirectory(db)

    # ===== QUERIES =====

    def get_purchase_order(self, order_id: int) -> PurchaseOrder:
        """Order with its items and their inspections loaded."""
        order = (
            self.db.query(PurchaseOrder)
            .options(selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.inspections))
            .filter(PurchaseOrder.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError("PurchaseOrder", order_id)
        return order

    def list_purchase_orders(
        self,
        status: Optional[POStatus] = None,
        supplier_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder).options(selectinload(PurchaseOrder.items))
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if supplier_id:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)
        return (
            query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
            .limit(limit)
            .all()
        )

    def get_item(self, item_id: int) -> PurchaseOrderItem:
        item = self.db.query(PurchaseOrderItem).filter(PurchaseOrderItem.id == item_id).first()
        if not item:
            raise NotFoundError("PurchaseOrderItem", item_id)
        return item

    # ===== ORDER CRUD =====

    def create_purchase_order(
        self,
        supplier_id: int,
        expected_delivery_date: Optional[date] = None,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
        order_date: Optional[date] = None,
    ) -> PurchaseOrder:
        """Create an empty draft order. Items are added afterwards."""
        with atomic(self.db, "create purchase order"):
            order = self._insert_order(supplier_id, expected_delivery_date, notes, created_by, order_date)
        logger.info(f"Created purchase order {order.display_number} for supplier {supplier_id}")
        return order

    def create_complete_purchase_order(
        self,
        order: Dict[str, Any],
        items: Iterable[Dict[str, Any]],
    ) -> PurchaseOrder:
        """Create an order together with all of its items.

        All-or-nothing: if any item is rejected, no order is left behind.
        """
        with atomic(self.db, "create purchase order with items"):
            po = self._insert_order(
                supplier_id=order.get("supplier_id"),
                expected_delivery_date=order.get("expected_delivery_date"),
                notes=order.get("notes"),
                created_by=order.get("created_by"),
                order_date=order.get("order_date"),
            )
            for item in items:
                self._insert_item(
                    po,
                    product_id=item.get("product_id"),
                    quantity_ordered=item.get("quantity_ordered"),
                    unit_price=item.get("unit_price"),
                )
            self._recalculate_total(po)

        logger.info(
            f"Created purchase order {po.display_number} with {len(po.items)} items, "
            f"total={po.total_amount}"
        )
        return self.get_purchase_order(po.id)

    def update_purchase_order(
        self,
        order_id: int,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> PurchaseOrder:
        """Update order header fields. Status changes go through send/approve/cancel."""
        unknown = set(updates) - ORDER_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with atomic(self.db, "update purchase order"):
            order = self._lock_order(order_id)
            order.check_version(expected_version)
            for required in ("supplier_id", "order_date"):
                if required in updates and not updates[required]:
                    raise ValidationError(f"{required} cannot be empty")
            if "supplier_id" in updates:
                self.directory.require_supplier(updates["supplier_id"])
            for key, value in updates.items():
                setattr(order, key, value)
            order.increment_version()
        return order

    def delete_purchase_order(self, order_id: int) -> None:
        """Delete an order with its items and inspection records."""
        with atomic(self.db, "delete purchase order"):
            order = self._lock_order(order_id)
            self.db.delete(order)
        logger.info(f"Deleted purchase order {order_id}")

    # ===== STATUS TRANSITIONS =====

    def send(self, order_id: int, expected_version: Optional[int] = None) -> PurchaseOrder:
        return self._transition(order_id, POStatus.SENT, expected_version)

    def approve(self, order_id: int, expected_version: Optional[int] = None) -> PurchaseOrder:
        return self._transition(order_id, POStatus.APPROVED, expected_version)

    def cancel(self, order_id: int, expected_version: Optional[int] = None) -> PurchaseOrder:
        return self._transition(order_id, POStatus.CANCELLED, expected_version)

    def _transition(
        self, order_id: int, target: POStatus, expected_version: Optional[int]
    ) -> PurchaseOrder:
        with atomic(self.db, f"mark purchase order {target.value}"):
            order = self._lock_order(order_id)
            order.check_version(expected_version)
            if target not in STATUS_TRANSITIONS[order.status]:
                raise ValidationError(
                    f"Cannot move purchase order {order.display_number} "
                    f"from '{order.status.value}' to '{target.value}'"
                )
            previous = order.status
            order.status = target
            if target == POStatus.SENT:
                order.sent_at = datetime.now(timezone.utc)
            order.increment_version()
        logger.info(f"Purchase order {order.display_number}: {previous.value} -> {target.value}")
        return order

    # ===== ITEMS =====

    def add_item(
        self,
        order_id: int,
        product_id: int,
        quantity_ordered: Any,
        unit_price: Any,
    ) -> PurchaseOrderItem:
        """Add a line to an order and recompute the order total."""
        with atomic(self.db, "add purchase order item"):
            order = self._lock_order(order_id)
            item = self._insert_item(order, product_id, quantity_ordered, unit_price)
            self._recalculate_total(order)
        return item

    def update_item(self, item_id: int, updates: Dict[str, Any]) -> PurchaseOrderItem:
        """Apply a partial update to a line and recompute the order total."""
        unknown = set(updates) - ITEM_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with atomic(self.db, "update purchase order item"):
            item = self.get_item(item_id)
            order = self._lock_order(item.purchase_order_id)
            self._ensure_editable(order)

            if "product_id" in updates:
                self.directory.require_product(updates["product_id"])
                item.product_id = updates["product_id"]
            if "unit_price" in updates:
                price = to_decimal(updates["unit_price"], "unit_price")
                if price < 0:
                    raise ValidationError("Unit price cannot be negative")
                item.unit_price = price

            ordered = Decimal(item.quantity_ordered)
            received = Decimal(item.quantity_received or 0)
            approved = Decimal(item.quantity_approved or 0)
            if "quantity_ordered" in updates:
                ordered = to_decimal(updates["quantity_ordered"], "quantity_ordered")
                if ordered <= 0:
                    raise ValidationError("Ordered quantity must be greater than zero")
            if "quantity_received" in updates:
                received = to_decimal(updates["quantity_received"], "quantity_received")
            if "quantity_approved" in updates:
                approved = to_decimal(updates["quantity_approved"], "quantity_approved")
            self.policy.check_quantities(item, ordered, received, approved)
            item.quantity_ordered = ordered
            item.quantity_received = received
            item.quantity_approved = approved

            if "quantity_ordered" in updates or "unit_price" in updates:
                item.subtotal = quantize_money(Decimal(item.quantity_ordered) * Decimal(item.unit_price))
            self._recalculate_total(order)
        return item

    def remove_item(self, item_id: int) -> None:
        """Delete a line and recompute the order total."""
        with atomic(self.db, "remove purchase order item"):
            item = self.get_item(item_id)
            order = self._lock_order(item.purchase_order_id)
            self._ensure_editable(order)
            order.items.remove(item)
            self.db.flush()
            self._recalculate_total(order)
        logger.info(f"Removed item {item_id} from purchase order {order.display_number}")

    # ===== RECEIVING =====

    def receive_items(self, order_id: int, received_items: Iterable[Dict[str, Any]]) -> ReceiptResult:
        """Record received quantities (absolute, not additive) per item.

        The order becomes ``received`` once every item has
        quantity_received >= quantity_ordered. Partial receipt keeps the
        current status; ``outstanding`` reports what is still missing.
        """
        with atomic(self.db, "receive purchase order items"):
            order = self._lock_order(order_id)
            if order.status in TERMINAL_STATUSES:
                raise ValidationError(
                    f"Cannot receive goods on a {order.status.value} purchase order"
                )
            items_by_id = {item.id: item for item in order.items}

            for received in received_items:
                item_id = received.get("item_id")
                item = items_by_id.get(item_id)
                if item is None:
                    raise NotFoundError(f"PurchaseOrderItem on {order.display_number}", item_id)
                quantity = to_decimal(received.get("quantity_received"), "quantity_received")
                self.policy.check_received(item, quantity)
                item.quantity_received = quantity

            self.db.flush()
            fully_received = bool(order.items) and all(item.is_fully_received for item in order.items)
            if fully_received:
                order.status = POStatus.RECEIVED
                order.received_at = datetime.now(timezone.utc)
            order.increment_version()
            outstanding = {
                item.id: item.quantity_outstanding
                for item in order.items
                if item.quantity_outstanding > 0
            }

        if fully_received:
            logger.info(f"Purchase order {order.display_number} fully received")
        else:
            logger.info(
                f"Purchase order {order.display_number} partially received, "
                f"{len(outstanding)} item(s) outstanding"
            )
        return ReceiptResult(order=order, fully_received=fully_received, outstanding=outstanding)

    # ===== HELPERS =====

    def _lock_order(self, order_id: int) -> PurchaseOrder:
        order = (
            self.db.query(PurchaseOrder)
            .filter(PurchaseOrder.id == order_id)
            .with_for_update()
            .first()
        )
        if not order:
            raise NotFoundError("PurchaseOrder", order_id)
        return order

    def _ensure_editable(self, order: PurchaseOrder) -> None:
        if order.status in TERMINAL_STATUSES:
            raise ValidationError(
                f"Purchase order {order.display_number} is {order.status.value} and cannot be changed"
            )

    def _insert_order(
        self,
        supplier_id: Optional[int],
        expected_delivery_date: Optional[date],
        notes: Optional[str],
        created_by: Optional[int],
        order_date: Optional[date],
    ) -> PurchaseOrder:
        if not supplier_id:
            raise ValidationError("supplier_id is required")
        self.directory.require_supplier(supplier_id)
        order = PurchaseOrder(
            supplier_id=supplier_id,
            status=POStatus.DRAFT,
            expected_delivery_date=expected_delivery_date,
            notes=notes,
            created_by=created_by,
            total_amount=Decimal("0"),
        )
        if order_date:
            order.order_date = order_date
        self.db.add(order)
        self.db.flush()
        return order

    def _insert_item(
        self,
        order: PurchaseOrder,
        product_id: Optional[int],
        quantity_ordered: Any,
        unit_price: Any,
    ) -> PurchaseOrderItem:
        self._ensure_editable(order)
        if not product_id:
            raise ValidationError("product_id is required")
        self.directory.require_product(product_id)

        quantity = to_decimal(quantity_ordered, "quantity_ordered")
        if quantity <= 0:
            raise ValidationError("Ordered quantity must be greater than zero")
        price = to_decimal(unit_price, "unit_price")
        if price < 0:
            raise ValidationError("Unit price cannot be negative")

        item = PurchaseOrderItem(
            product_id=product_id,
            quantity_ordered=quantity,
            quantity_received=Decimal("0"),
            quantity_approved=Decimal("0"),
            unit_price=price,
            subtotal=quantize_money(quantity * price),
        )
        order.items.append(item)
        self.db.flush()
        return item

    def _recalculate_total(self, order: PurchaseOrder) -> Decimal:
        """Persist sum(item.subtotal) as the order total."""
        self.db.flush()
        total = sum((Decimal(item.subtotal) for item in order.items), Decimal("0"))
        order.total_amount = quantize_money(total)
        order.increment_version()
        self.db.flush()
        logger.debug(f"Purchase order {order.display_number} total recalculated: {order.total_amount}")
        return order.total_amount
