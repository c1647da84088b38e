from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

MAX_IMAGE_LENGTH = 10 * 1024 * 1024


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    image_url: Optional[str] = Field(
        default=None,
        max_length=MAX_IMAGE_LENGTH,
        description="Image URL or data URL, at most 10MB",
    )

    cost_price: Decimal = Field(..., ge=0, lt=10_000_000_000)
    selling_price: Decimal = Field(..., ge=0, lt=10_000_000_000)

    barcode: Optional[str] = Field(default=None, max_length=100)
    stock: int = Field(..., ge=0)

    sizes: List[str] = []
    colors: List[str] = []

    category_id: Optional[int] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    pass


class CategoryRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    name: str
    image_url: Optional[str]
    cost_price: Decimal
    selling_price: Decimal
    barcode: Optional[str]
    stock: int
    sizes: List[str]
    colors: List[str]
    category_id: Optional[int]
    category: Optional[CategoryRef] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
