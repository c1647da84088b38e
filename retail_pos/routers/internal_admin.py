# retail_pos/routers/internal_admin.py

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
import logging
import secrets as secrets_lib

from retail_pos.database import get_db, engine, Base
from retail_pos.models.users import User, UserRole
from retail_pos.core.config import settings
from retail_pos.core.hashing import hash_password
from retail_pos.routers.store_settings import get_or_create_settings

router = APIRouter(prefix="/internal", tags=["Internal"])

logger = logging.getLogger(__name__)


@router.post("/setup")
def setup_database(
    secret: str,
    db: Session = Depends(get_db),
):
    """
    First-run setup: creates missing tables, the default store
    settings row and, when no admin exists yet, the default admin.
    Safe to call again.
    """
    # Protect this route with a secret key
    if not secrets_lib.compare_digest(secret, settings.INTERNAL_ADMIN_SECRET):
        raise HTTPException(status_code=403, detail="Unauthorized")

    Base.metadata.create_all(bind=engine)

    get_or_create_settings(db)

    admin_created = False
    has_admin = db.query(User).filter(User.role == UserRole.ADMIN).first()

    if not has_admin:
        taken = (
            db.query(User)
            .filter(
                (User.username == settings.DEFAULT_ADMIN_USERNAME)
                | (User.email == settings.DEFAULT_ADMIN_EMAIL)
            )
            .first()
        )
        if taken:
            raise HTTPException(
                status_code=409,
                detail="Default admin username or email is already used by another account",
            )

        admin = User(
            username=settings.DEFAULT_ADMIN_USERNAME,
            email=settings.DEFAULT_ADMIN_EMAIL,
            password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
        )
        db.add(admin)
        db.commit()
        admin_created = True
        logger.info(f"Default admin {admin.username} created")

    return {
        "message": "Database setup completed successfully",
        "tables": sorted(Base.metadata.tables.keys()),
        "admin_created": admin_created,
    }


@router.post("/promote-admin")
def promote_admin(
    username: str,
    secret: str,
    db: Session = Depends(get_db),
):
    if not secrets_lib.compare_digest(secret, settings.INTERNAL_ADMIN_SECRET):
        raise HTTPException(status_code=403, detail="Unauthorized")

    user = db.query(User).filter(User.username == username).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.role = UserRole.ADMIN
    db.commit()

    return {"message": f"{username} promoted to admin"}
