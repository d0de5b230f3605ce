"""Auth endpoints: register, login, refresh, logout, session, self-service update."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

import jwt
import structlog
from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, field_validator

from crm_pro_service.auth.deps import IdentityDep
from crm_pro_service.auth.jwt import (
    access_expiry,
    create_access_token,
    create_refresh_token,
    decode_token,
    new_jti,
    refresh_expiry,
)
from crm_pro_service.auth.passwords import verify_password
from crm_pro_service.db.deps import AuthRepoDep, UsersRepoDep
from crm_pro_service.settings import settings

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


def _check_password(v: str) -> str:
    if len(v) < settings.min_password_length:
        raise ValueError(
            f"Password must be at least {settings.min_password_length} characters"
        )
    return v


class RegisterRequest(BaseModel):
    org_name: str
    full_name: str
    email: str
    password: str

    @field_validator("org_name", "full_name", "email")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Must not be blank")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UpdateAuthUserRequest(BaseModel):
    password: str | None = None
    full_name: str | None = None

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str | None) -> str | None:
        return _check_password(v) if v else None


class AuthUserSchema(BaseModel):
    id: str
    email: str


class SessionSchema(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: AuthUserSchema


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _issue_session(repo, auth_user, session_row=None) -> SessionSchema:
    """Start a login session, or rotate ``session_row``'s refresh token."""
    jti = new_jti()
    refresh_expires = refresh_expiry()
    if session_row is None:
        session_row = await repo.create_session(auth_user.id, jti, refresh_expires)
    else:
        session_row = await repo.rotate_session(session_row, jti, refresh_expires)

    expires_at = access_expiry()
    return SessionSchema(
        access_token=create_access_token(
            auth_user.id, session_row.id, auth_user.email, expires_at=expires_at
        ),
        refresh_token=create_refresh_token(
            auth_user.id, session_row.id, jti, expires_at=refresh_expires
        ),
        expires_at=expires_at,
        user=AuthUserSchema(id=str(auth_user.id), email=auth_user.email),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=SessionSchema, status_code=201)
async def register(
    request: RegisterRequest, repo: AuthRepoDep, users: UsersRepoDep
) -> SessionSchema:
    """Create an organization, its first identity and that identity's admin profile."""
    if await repo.get_auth_user_by_email(request.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    org = await repo.create_org(name=request.org_name)
    auth_user = await repo.create_auth_user(
        email=request.email, password=request.password, full_name=request.full_name
    )
    await users.create(
        org_id=org.id,
        auth_user_id=auth_user.id,
        email=auth_user.email,
        full_name=request.full_name,
        role="admin",
    )
    session = await _issue_session(repo, auth_user)
    await repo.commit()
    log.info("organization_registered", org_id=str(org.id), auth_user_id=str(auth_user.id))
    return session


@router.post("/login", response_model=SessionSchema)
async def login(request: LoginRequest, repo: AuthRepoDep) -> SessionSchema:
    """Verify credentials and start a session. A tenant profile is not required."""
    auth_user = await repo.get_auth_user_by_email(request.email)
    if not auth_user or not verify_password(request.password, auth_user.password_hash):
        log.info("login_failed", email=request.email.lower())
        raise HTTPException(status_code=401, detail="Invalid login credentials")

    session = await _issue_session(repo, auth_user)
    await repo.commit()
    return session


@router.post("/refresh", response_model=SessionSchema)
async def refresh(request: RefreshRequest, repo: AuthRepoDep) -> SessionSchema:
    """Rotate the refresh token of a live session.

    Presenting an already-rotated refresh token revokes the whole session.
    """
    try:
        payload = decode_token(request.refresh_token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token") from exc

    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Not a refresh token")

    try:
        auth_user_id = UUID(payload["sub"])
        session_id = UUID(payload["sid"])
        jti = payload["jti"]
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Malformed token payload") from exc

    session_row = await repo.get_session(session_id)
    if (
        session_row is None
        or session_row.revoked_at is not None
        or session_row.auth_user_id != auth_user_id
        or session_row.expires_at <= datetime.now(UTC)
    ):
        raise HTTPException(status_code=401, detail="Session expired")

    if session_row.refresh_jti != jti:
        await repo.revoke_session(session_row)
        await repo.commit()
        log.warning("refresh_token_reused", session_id=str(session_id))
        raise HTTPException(status_code=401, detail="Session expired")

    auth_user = await repo.get_auth_user(auth_user_id)
    if auth_user is None:
        raise HTTPException(status_code=401, detail="User not found")

    session = await _issue_session(repo, auth_user, session_row)
    await repo.commit()
    return session


@router.post("/logout", status_code=204)
async def logout(identity: IdentityDep, repo: AuthRepoDep) -> Response:
    session_row = await repo.get_session(identity.session_id)
    if session_row is not None and session_row.revoked_at is None:
        await repo.revoke_session(session_row)
        await repo.commit()
    return Response(status_code=204)


@router.get("/session", response_model=AuthUserSchema)
async def current_session(identity: IdentityDep) -> AuthUserSchema:
    """Return the identity behind the bearer token."""
    return AuthUserSchema(id=str(identity.auth_user_id), email=identity.email)


@router.patch("/user", response_model=AuthUserSchema)
async def update_user(
    request: UpdateAuthUserRequest,
    identity: IdentityDep,
    repo: AuthRepoDep,
    users: UsersRepoDep,
) -> AuthUserSchema:
    """Change the caller's own password and/or full name.

    A new full name is copied onto the tenant profile too.
    """
    auth_user = await repo.get_auth_user(identity.auth_user_id)
    if auth_user is None:
        raise HTTPException(status_code=404, detail="User not found")

    full_name = request.full_name.strip() if request.full_name else None
    await repo.update_auth_user(auth_user, password=request.password, full_name=full_name)
    if full_name:
        profile = await users.get_by_auth_user(identity.auth_user_id)
        if profile is not None:
            await users.update(profile, full_name=full_name)
    await repo.commit()
    log.info(
        "auth_user_updated",
        auth_user_id=str(auth_user.id),
        password_changed=bool(request.password),
    )
    return AuthUserSchema(id=str(auth_user.id), email=auth_user.email)
