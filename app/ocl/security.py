"""Bearer token issue/verify helpers (HS256 JWT)."""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from jose import JWTError, jwt

JWT_ALGORITHM = "HS256"

__all__ = ["JWTError", "create_access_token", "decode_token", "bearer_token"]


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    minutes = int(current_app.config.get("ACCESS_TOKEN_EXPIRE_MINUTES") or 720)
    expire = datetime.utcnow() + (expires_delta if expires_delta is not None else timedelta(minutes=minutes))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, current_app.config["SECRET_KEY"], algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[JWT_ALGORITHM])


def bearer_token(header_value: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
