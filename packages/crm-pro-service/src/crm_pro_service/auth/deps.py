"""FastAPI auth dependencies."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy import text

from crm_pro_service.auth.jwt import decode_token
from crm_pro_service.auth.models import CurrentUser, Identity
from crm_pro_service.db.deps import AuthRepoDep, SessionDep, UsersRepoDep

log = structlog.get_logger(__name__)


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Authentication required")
    return auth_header.removeprefix("Bearer ").strip()


async def get_current_identity(request: Request, repo: AuthRepoDep) -> Identity:
    """Verify the access token and check that its session is still live."""
    try:
        payload = decode_token(_bearer_token(request))
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from exc

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Not an access token")

    try:
        auth_user_id = UUID(payload["sub"])
        session_id = UUID(payload["sid"])
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Malformed token payload") from exc

    session_row = await repo.get_session(session_id)
    if (
        session_row is None
        or session_row.revoked_at is not None
        or session_row.auth_user_id != auth_user_id
    ):
        raise HTTPException(status_code=401, detail="Session revoked")

    return Identity(
        auth_user_id=auth_user_id, session_id=session_id, email=payload.get("email", "")
    )


IdentityDep = Annotated[Identity, Depends(get_current_identity)]


async def get_current_user(
    identity: IdentityDep, users: UsersRepoDep, session: SessionDep
) -> CurrentUser:
    """
    Resolve the caller's tenant profile.

    Role and org_id always come from the profile row. On success, sets
    app.current_org_id on the DB session for RLS.
    """
    profile = await users.get_by_auth_user(identity.auth_user_id)
    if profile is None:
        log.warning("profile_missing", auth_user_id=str(identity.auth_user_id))
        raise HTTPException(status_code=403, detail="User profile not found")

    await session.execute(
        text("SELECT set_config('app.current_org_id', :org_id, false)"),
        {"org_id": str(profile.org_id)},
    )

    return CurrentUser(
        profile_id=profile.id,
        auth_user_id=identity.auth_user_id,
        org_id=profile.org_id,
        email=profile.email,
        role=profile.role,
    )


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def require_role(*roles: str):
    """Dependency factory that enforces role membership."""

    async def _check(current_user: CurrentUserDep) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{current_user.role}' is not permitted. Required: {list(roles)}",
            )
        return current_user

    return Depends(_check)


AdminDep = Annotated[CurrentUser, require_role("admin")]


def ensure_org(current_user: CurrentUser, org_id: str | UUID | None) -> UUID:
    """Return the caller's org, rejecting an explicit org_id for another tenant."""
    if org_id is not None and str(org_id) != str(current_user.org_id):
        raise HTTPException(status_code=403, detail="Organization mismatch")
    return current_user.org_id


def parse_id(value: str, what: str = "Resource") -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"{what} not found") from exc
