# retail_pos/core/auth.py

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from retail_pos.database import get_db
from retail_pos.models.users import User, UserRole
from retail_pos.core.tokens import decode_access_token, oauth2_scheme


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    claims = decode_access_token(token)
    if claims is None:
        raise _unauthorized("Invalid or expired token")

    subject = str(claims.get("sub") or "")
    if not subject.isdigit():
        raise _unauthorized("Invalid token payload")

    # Deleted accounts lose access even while their token is unexpired
    user = db.query(User).filter(User.id == int(subject)).first()
    if user is None:
        raise _unauthorized("User not found")

    return user


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    # Role comes from the users table so a demotion applies immediately
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    return current_user
