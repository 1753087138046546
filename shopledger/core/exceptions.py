"""Domain exceptions raised by the ledger services.

Routes never catch these individually: ``shopledger.main`` registers one
handler per class that turns it into an HTTP response.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for all procurement and payables errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Input rejected before any write. Safe to retry after correcting it."""

    status_code = 400


class NotFoundError(LedgerError):
    """A referenced order, item, payable, supplier or product does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(LedgerError):
    """Raised when a row was modified since the caller read it."""

    status_code = 409

    def __init__(self, entity: str, expected: int, current: int):
        self.entity = entity
        self.expected = expected
        self.current = current
        super().__init__(
            f"{entity} was modified by another user "
            f"(expected version {expected}, current {current}). Refresh and try again."
        )


class StockError(LedgerError):
    """Raised when the stock ledger refuses a movement."""

    status_code = 422

    def __init__(self, message: str, product_id: Optional[int] = None,
                 quantity: Optional[Decimal] = None):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(message)


class PersistenceError(LedgerError):
    """The underlying store failed. The transaction has been rolled back."""

    status_code = 503
