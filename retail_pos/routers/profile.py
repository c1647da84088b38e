# retail_pos/routers/profile.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user
from retail_pos.core.hashing import hash_password, verify_password
from retail_pos.routers.users import ensure_unique_identity, with_sales_stats
from retail_pos.schemas.user import ProfileUpdate, UserStatsResponse

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=UserStatsResponse)
def get_profile(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return with_sales_stats(db, current_user)


@router.put("", response_model=UserStatsResponse)
def update_profile(
    profile_data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_unique_identity(db, profile_data.username, profile_data.email, exclude_id=current_user.id)

    # Changing the password requires the current one
    if profile_data.new_password:
        if not profile_data.current_password:
            raise HTTPException(
                status_code=400,
                detail="Current password is required to change password",
            )

        if not verify_password(profile_data.current_password, current_user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        current_user.password_hash = hash_password(profile_data.new_password)

    current_user.username = profile_data.username
    current_user.email = profile_data.email

    db.commit()
    db.refresh(current_user)

    return with_sales_stats(db, current_user)
