# retail_pos/models/users.py

from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime
from sqlalchemy.sql import func

from retail_pos.database import Base


class UserRole:
    ADMIN = "admin"
    CASHIER = "cashier"

    ALL = (ADMIN, CASHIER)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    # Cashiers run the till, admins also manage users, categories and settings
    role = Column(String(20), nullable=False, default=UserRole.CASHIER)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'cashier')", name="ck_users_role_valid"),
    )
