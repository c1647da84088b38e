# retail_pos/core/tokens.py

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from retail_pos.core.config import settings

ACCESS_TOKEN_TYPE = "access"

# Tills send the token from /auth/login as "Authorization: Bearer <token>"
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims["exp"] = datetime.now(timezone.utc) + lifetime
    claims["type"] = ACCESS_TOKEN_TYPE

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user) -> str:
    """Session token for a user. The role claim is for the client UI only."""
    return create_access_token({"sub": str(user.id), "role": user.role})


def decode_access_token(token: str) -> Optional[dict]:
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None

    return claims
