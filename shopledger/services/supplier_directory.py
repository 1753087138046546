"""Read-only lookups of suppliers and products referenced by the ledger."""

from typing import List, Optional

from sqlalchemy.orm import Session

from shopledger.core.exceptions import NotFoundError
from shopledger.models.product import Product
from shopledger.models.supplier import Supplier


class SupplierDirectory:
    """Supplier and product lookup. Never mutates what it returns."""

    def __init__(self, db: Session):
        self.db = db

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self.db.query(Supplier).filter(Supplier.id == supplier_id).first()

    def require_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    def list_suppliers(self, active_only: bool = False, limit: int = 500) -> List[Supplier]:
        query = self.db.query(Supplier)
        if active_only:
            query = query.filter(Supplier.active.is_(True))
        return query.order_by(Supplier.name).limit(limit).all()

    def search_suppliers(self, term: str, limit: int = 50) -> List[Supplier]:
        pattern = f"%{term.strip()}%"
        return (
            self.db.query(Supplier)
            .filter(Supplier.name.ilike(pattern))
            .order_by(Supplier.name)
            .limit(limit)
            .all()
        )

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def require_product(self, product_id: int) -> Product:
        product = self.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product
