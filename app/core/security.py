"""Bearer tokens shared with the school system. The tenant travels in the school_id claim."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import jwt, JWTError

from app.core.config import settings
from app.models.enums import Role

REQUIRED_CLAIMS = ("sub", "school_id")


def create_access_token(
    user_id: str,
    school_id: UUID,
    role: Role = Role.staff,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "school_id": str(school_id),
        "role": Role(role).value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a valid, unexpired token carrying sub and school_id; None otherwise."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
        return None
    return payload
