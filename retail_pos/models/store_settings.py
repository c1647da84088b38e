# retail_pos/models/store_settings.py

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func

from retail_pos.database import Base


DEFAULT_STORE_SETTINGS = {
    "store_name": "POS System",
    "address": "Store Address",
    "phone": "",
    "tax_rate": 10,
    "currency": "LAK",
    "receipt_footer": "Thank you for your business!",
}


class StoreSettings(Base):
    __tablename__ = "store_settings"

    id = Column(Integer, primary_key=True, index=True)
    store_name = Column(String(255), nullable=False)
    logo_url = Column(Text, nullable=True)
    address = Column(Text, nullable=False)
    phone = Column(String(50), nullable=True)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False)
    receipt_footer = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="ck_tax_rate_range"),
    )
