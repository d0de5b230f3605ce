"""JWT token creation and verification."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt

from crm_pro_service.settings import settings


def _now_utc() -> datetime:
    return datetime.now(UTC)


def new_jti() -> str:
    return secrets.token_urlsafe(16)


def access_expiry(now: datetime | None = None) -> datetime:
    return (now or _now_utc()) + timedelta(minutes=settings.access_token_expire_minutes)


def refresh_expiry(now: datetime | None = None) -> datetime:
    return (now or _now_utc()) + timedelta(days=settings.refresh_token_expire_days)


def create_access_token(
    auth_user_id: UUID,
    session_id: UUID,
    email: str,
    expires_at: datetime | None = None,
) -> str:
    """Create a signed JWT access token.

    Carries identity only. Role and organization are looked up per request.
    """
    now = _now_utc()
    payload = {
        "sub": str(auth_user_id),
        "sid": str(session_id),
        "email": email,
        "iat": now,
        "exp": expires_at or access_expiry(now),
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    auth_user_id: UUID,
    session_id: UUID,
    jti: str,
    expires_at: datetime | None = None,
) -> str:
    """Create a signed JWT refresh token. ``jti`` rotates on every refresh."""
    now = _now_utc()
    payload = {
        "sub": str(auth_user_id),
        "sid": str(session_id),
        "jti": jti,
        "iat": now,
        "exp": expires_at or refresh_expiry(now),
        "type": "refresh",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
