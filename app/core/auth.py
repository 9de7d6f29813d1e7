# app/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from app.core.config import get_settings

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so customer-facing routes can stay anonymous (orders are looked up by id).
bearer_scheme = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """
    Identity resolved from a verified access token.

    Tokens are issued by the external auth service; this backend only
    verifies them. No user table is kept here.
    """

    sub: str
    email: str | None = None
    role: str = "user"


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT).

    Verification:
      - signature (HS256 using AUTH_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal | None:
    """
    Resolve the caller from the bearer token.

    Returns:
        Principal if a token was sent, else None for anonymous callers.

    Raises:
        HTTPException(401): if the token is malformed or has no 'sub'.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    return Principal(
        sub=str(sub),
        email=payload.get("email"),
        role=payload.get("role") or "user",
    )


def require_auth(
    principal: Principal | None = Depends(get_current_principal),
) -> Principal:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if no token was sent.
    """
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return principal


def require_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """
    Enforce admin role.

    Raises:
        HTTPException(403): if role is not admin.
    """
    if principal.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal
