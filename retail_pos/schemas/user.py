from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

Role = Literal["admin", "cashier"]


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, description="Login name used at the till")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, max_length=72, description="Plain password (will be hashed). Minimum 6 characters.")


class UserCreate(UserRegister):
    role: Role = "cashier"


class UserUpdate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    role: Role
    # Left out to keep the current password
    password: Optional[str] = Field(default=None, min_length=6, max_length=72)


class ProfileUpdate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(default=None, min_length=6, max_length=72)


class UserResponse(BaseModel):
    id: int
    username: str
    email: EmailStr
    role: Role
    created_at: datetime

    class Config:
        from_attributes = True


class UserStatsResponse(UserResponse):
    total_sales: int = 0
    total_revenue: Decimal = Decimal("0")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
