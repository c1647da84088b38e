# retail_pos/models/products.py

from sqlalchemy import CheckConstraint, Column, Integer, String, Text, Numeric, ForeignKey, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from retail_pos.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    image_url = Column(Text, nullable=True)
    cost_price = Column(Numeric(12, 2), nullable=False)
    selling_price = Column(Numeric(12, 2), nullable=False)
    barcode = Column(String(100), unique=True, nullable=True, index=True)
    stock = Column(Integer, nullable=False, default=0)

    # Variant selectors offered at the till (free text)
    sizes = Column(JSON, nullable=False, default=list)
    colors = Column(JSON, nullable=False, default=list)

    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    category = relationship("Category", back_populates="products")

    __table_args__ = (
        CheckConstraint("cost_price >= 0", name="ck_cost_price_non_negative"),
        CheckConstraint("selling_price >= 0", name="ck_selling_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )
