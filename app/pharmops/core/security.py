import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel

from app.pharmops.core.config import settings

# Tokens are issued by the external auth service; this module only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class TokenData(BaseModel):
    sub: str
    role: str
    pharmacy_id: uuid.UUID | None = None
    branch_id: uuid.UUID | None = None


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_operator_access_token(
    *,
    user_id: str,
    role: str,
    pharmacy_id: str | None = None,
    branch_id: str | None = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    return create_access_token(
        {
            "sub": str(user_id),
            "role": role,
            "pharmacy_id": str(pharmacy_id) if pharmacy_id else None,
            "branch_id": str(branch_id) if branch_id else None,
        },
        expires_delta=expires_delta,
    )
