from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class StoreSettingsUpdate(BaseModel):
    store_name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=1000)
    logo_url: Optional[str] = Field(default=None, max_length=100_000, description="Logo image, at most 100KB")
    phone: Optional[str] = Field(default=None, max_length=50)
    tax_rate: Decimal = Field(..., ge=0, le=100)
    currency: str = Field(..., min_length=1, max_length=10)
    receipt_footer: Optional[str] = Field(default=None, max_length=500)


class StoreSettingsResponse(BaseModel):
    id: int
    store_name: str
    logo_url: Optional[str]
    address: str
    phone: Optional[str]
    tax_rate: Decimal
    currency: str
    receipt_footer: Optional[str]
    updated_at: datetime

    class Config:
        from_attributes = True


class PublicSettingsResponse(BaseModel):
    store_name: str
    logo_url: str
    store_address: str
    store_phone: str
