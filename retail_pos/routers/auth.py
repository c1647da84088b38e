from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import SQLAlchemyError
import logging

from retail_pos.database import get_db
from retail_pos.models.users import User, UserRole
from retail_pos.schemas.user import UserRegister, TokenResponse
from retail_pos.core.hashing import hash_password, verify_password
from retail_pos.core.tokens import create_user_token
from retail_pos.core.rate_limiter import limiter

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = logging.getLogger(__name__)

COMMON_PASSWORDS = {
    "password",
    "password123",
    "12345678",
    "qwerty123",
    "admin123",
}


# ---------------- REGISTER ----------------
@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
def register(request: Request, user_data: UserRegister, db: Session = Depends(get_db)):
    if user_data.password.lower() in COMMON_PASSWORDS:
        raise HTTPException(
            status_code=400,
            detail="Password is too common. Please choose a stronger password.",
        )

    existing = (
        db.query(User)
        .filter((User.email == user_data.email) | (User.username == user_data.username))
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=409,
            detail="User with this email or username already exists",
        )

    # Self-registered accounts are always cashiers; admins are created by admins
    user = User(
        username=user_data.username,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        role=UserRole.CASHIER,
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)

    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to create account")

    logger.info(f"Registered cashier account {user.username}")

    return {
        "access_token": create_user_token(user),
        "token_type": "bearer",
        "user": user,
    }

# ---------------- LOGIN (TOKEN-BASED) ----------------
@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.username == form_data.username).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "access_token": create_user_token(user),
        "token_type": "bearer",
        "user": user,
    }


# ---------------- LOGOUT ----------------
@router.post("/logout")
def logout():
    return {"message": "Logged out successfully"}
