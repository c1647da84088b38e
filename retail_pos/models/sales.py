# models/sales.py

from sqlalchemy import CheckConstraint, Column, Index, Integer, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from retail_pos.database import Base


PAYMENT_METHODS = ("cash", "card", "bank_transfer")


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)

    # Kept when the cashier account is removed
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    total_amount = Column(Numeric(12, 2), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(50), nullable=False, default="cash")

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Client idempotency key (double click protection), unique per cashier
    request_id = Column(String(64), nullable=True)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id",
    )

    user = relationship("User")

    __table_args__ = (
        Index("ix_sales_user_created", "user_id", "created_at"),
        UniqueConstraint("user_id", "request_id", name="uq_sales_user_request"),
        CheckConstraint("total_amount > 0", name="ck_sales_total_positive"),
        CheckConstraint("tax_amount >= 0", name="ck_sales_tax_non_negative"),
        CheckConstraint(
            "payment_method IN ('cash', 'card', 'bank_transfer')",
            name="ck_sales_payment_method_valid",
        ),
    )
