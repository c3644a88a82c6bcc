"""
Admin gate for catalog mutations.

The identity provider issues the session JWT; this module only verifies it
and reads the role claim. Every mutating route depends on require_admin().
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

import jwt
from fastapi import Cookie, Header, HTTPException, status

from catalog import config


def create_jwt(subject: str, role: str | None = None, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Create a session JWT. Used by tests and local tooling.

    Args:
        subject: User identifier for the sub claim
        role: Value for app_metadata.role (e.g. "admin")
        expires_in: Token lifetime

    Returns:
        Signed JWT string
    """
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": now + expires_in,
        "app_metadata": {"role": role} if role else {},
    }
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and verify a JWT.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, config.settings.JWT_SECRET, algorithms=[config.settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def is_admin_claims(claims: dict) -> bool:
    app_metadata = claims.get("app_metadata") or {}
    return isinstance(app_metadata, dict) and app_metadata.get("role") == config.settings.ADMIN_ROLE


async def require_admin(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """
    FastAPI dependency: verified claims of an admin caller.

    Tries the Bearer header first, then the session cookie.

    Raises:
        HTTPException: 401 without a valid token, 403 for non-admins
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization.removeprefix("Bearer ")
    elif session:
        token = session

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
        )

    claims = decode_jwt(token)
    if not is_admin_claims(claims):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required.")
    return claims
