# retail_pos/routers/users.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func

from retail_pos.database import get_db
from retail_pos.core.auth import get_admin_user
from retail_pos.core.hashing import hash_password
from retail_pos.models.users import User
from retail_pos.models.sales import Sale
from retail_pos.schemas.user import UserCreate, UserUpdate, UserStatsResponse

router = APIRouter(prefix="/users", tags=["Users"])


def _sales_stats(db: Session, user_id: int):
    total_sales, total_revenue = (
        db.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0),
        )
        .filter(Sale.user_id == user_id)
        .one()
    )
    return total_sales, total_revenue


def with_sales_stats(db: Session, user: User) -> UserStatsResponse:
    total_sales, total_revenue = _sales_stats(db, user.id)

    return UserStatsResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        created_at=user.created_at,
        total_sales=total_sales,
        total_revenue=total_revenue,
    )


def ensure_unique_identity(db: Session, username: str, email: str, exclude_id: int | None = None):
    query = db.query(User).filter((User.username == username) | (User.email == email))

    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already exists",
        )


@router.get("", response_model=list[UserStatsResponse])
def list_users(
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    return [with_sales_stats(db, user) for user in users]


@router.post("", response_model=UserStatsResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    ensure_unique_identity(db, user_data.username, user_data.email)

    user = User(
        username=user_data.username,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        role=user_data.role,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    return with_sales_stats(db, user)


@router.put("/{user_id}", response_model=UserStatsResponse)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    ensure_unique_identity(db, user_data.username, user_data.email, exclude_id=user.id)

    user.username = user_data.username
    user.email = user_data.email
    user.role = user_data.role

    if user_data.password:
        user.password_hash = hash_password(user_data.password)

    db.commit()
    db.refresh(user)

    return with_sales_stats(db, user)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Sales stay for reporting, their user_id is set to NULL
    db.delete(user)
    db.commit()

    return {"message": "User deleted successfully"}
