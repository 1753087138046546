"""Stock movement schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class StockMovementResponse(BaseModel):
    """Stock movement response schema."""

    id: int
    ts: datetime
    product_id: int
    movement_type: str
    quantity_change: Decimal
    description: Optional[str] = None
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    created_by: Optional[int] = None

    model_config = {"from_attributes": True}
