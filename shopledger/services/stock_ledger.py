"""Stock Ledger - credits on-hand quantity and records the movement.

Consumed by quality control: approved quantities from purchase order
inspections are credited here. The ledger never commits; the caller owns
the transaction so the credit lands together with the inspection.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from shopledger.core.exceptions import StockError
from shopledger.models.product import Product
from shopledger.models.stock import MovementType, StockMovement

logger = logging.getLogger(__name__)


class StockLedger:
    """Stock on hand per product, with an append-only movement history."""

    def __init__(self, db: Session):
        self.db = db

    def credit(
        self,
        product_id: int,
        quantity: Decimal,
        reason: str,
        ref_type: Optional[str] = None,
        ref_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> StockMovement:
        """Increase stock of *product_id* by *quantity*.

        Raises:
            StockError: unknown product or non-positive quantity.
        """
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise StockError(
                f"Stock credit must be positive, got {quantity}",
                product_id=product_id,
                quantity=quantity,
            )

        product = (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )
        if not product:
            raise StockError(f"Product {product_id} not found", product_id=product_id, quantity=quantity)

        product.stock_quantity = Decimal(product.stock_quantity or 0) + quantity

        movement = StockMovement(
            product_id=product_id,
            movement_type=MovementType.PURCHASE.value,
            quantity_change=quantity,
            description=reason,
            ref_type=ref_type,
            ref_id=ref_id,
            created_by=created_by,
        )
        self.db.add(movement)
        self.db.flush()

        logger.info(
            f"Stock credited: product={product_id} qty=+{quantity} "
            f"new_level={product.stock_quantity} reason='{reason}'"
        )
        return movement

    def get_movements(self, product_id: int, limit: int = 50) -> List[StockMovement]:
        """Movements of a product, newest first."""
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.product_id == product_id)
            .order_by(StockMovement.ts.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )
