"""Supplier and product schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class SupplierResponse(BaseModel):
    """Supplier response schema."""

    id: int
    name: str
    contact_info: Optional[str] = None
    active: bool

    model_config = {"from_attributes": True}


class ProductResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: Decimal

    model_config = {"from_attributes": True}
