# schemas/sale.py

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, List, Optional
from decimal import Decimal


class SaleCreate(BaseModel):
    # Line items and amounts are kept loose here: the sale processor
    # validates them so it can name the offending line in its error.
    items: Optional[List[Any]] = None
    total_amount: Any = None
    tax_amount: Any = None
    payment_method: Optional[str] = None
    request_id: Optional[str] = Field(default=None, max_length=64)


class SaleItemResponse(BaseModel):
    id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None

    class Config:
        from_attributes = True


class SaleResponse(BaseModel):
    id: int
    user_id: Optional[int]
    total_amount: Decimal
    tax_amount: Decimal
    payment_method: str
    created_at: datetime
    items: List[SaleItemResponse]

    class Config:
        from_attributes = True


class SaleSummaryResponse(BaseModel):
    id: int
    user_id: Optional[int]
    cashier: Optional[str]
    total_amount: Decimal
    tax_amount: Decimal
    payment_method: str
    item_count: int
    created_at: datetime
