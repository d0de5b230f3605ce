"""Tenant user profile endpoints."""

from __future__ import annotations

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import (
    AdminDep,
    CurrentUserDep,
    IdentityDep,
    ensure_org,
    parse_id,
)
from crm_pro_service.db.deps import AuthRepoDep, UsersRepoDep
from crm_pro_service.rest.schemas import (
    CreateUserRequest,
    DashboardWidgetsRequest,
    UpdateUserRequest,
    UserSchema,
    opt_id,
)
from crm_pro_service.settings import settings

log = structlog.get_logger(__name__)

router = APIRouter()


def _user_to_schema(user, manages_users_count: int = 0) -> UserSchema:
    """Convert an ORM UserModel to the REST UserSchema."""
    manager = user.manager
    return UserSchema(
        id=str(user.id),
        auth_user_id=str(user.auth_user_id),
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        org_id=str(user.org_id),
        parent_user_id=opt_id(user.parent_user_id),
        role_name=user.role_name,
        manager_name=manager.full_name if manager is not None else None,
        manages_users_count=manages_users_count,
        dashboard_widgets=list(user.dashboard_widgets or []),
        created_at=user.created_at,
    )


async def _with_counts(repo, user) -> UserSchema:
    counts = await repo.count_reports(user.org_id)
    return _user_to_schema(user, counts.get(user.id, 0))


async def _check_manager(repo, org_id: UUID, user_id: UUID | None, manager_id: UUID | None):
    if manager_id is None:
        return
    if manager_id == user_id:
        raise HTTPException(status_code=400, detail="A user cannot manage themselves")
    if await repo.get(manager_id, org_id) is None:
        raise HTTPException(status_code=400, detail="Manager not found in this organization")


@router.get("/users", response_model=list[UserSchema])
async def list_users(
    repo: UsersRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> list[UserSchema]:
    """All profiles of the caller's organization, with manager names and report counts."""
    org = ensure_org(current_user, org_id)
    users = await repo.list(org)
    counts = await repo.count_reports(org)
    return [_user_to_schema(u, counts.get(u.id, 0)) for u in users]


@router.get("/users/by-auth/{auth_user_id}", response_model=UserSchema)
async def get_user_by_auth_user(
    auth_user_id: str, repo: UsersRepoDep, identity: IdentityDep
) -> UserSchema:
    """Resolve a profile from an identity.

    Needs only a valid session: this is how a freshly signed-in client
    finds its own profile. Other identities are visible within the same
    organization only.
    """
    profile = await repo.get_by_auth_user(parse_id(auth_user_id, "User profile"))
    if profile is not None and profile.auth_user_id != identity.auth_user_id:
        caller = await repo.get_by_auth_user(identity.auth_user_id)
        if caller is None or caller.org_id != profile.org_id:
            profile = None
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    return await _with_counts(repo, profile)


@router.post("/users", response_model=UserSchema, status_code=201)
async def create_user(
    request: CreateUserRequest,
    repo: UsersRepoDep,
    auth_repo: AuthRepoDep,
    current_user: AdminDep,
) -> UserSchema:
    """Create an identity and its profile inside the caller's organization."""
    org = ensure_org(current_user, request.org_id)
    if len(request.password) < settings.min_password_length:
        raise HTTPException(
            status_code=422,
            detail=f"Password must be at least {settings.min_password_length} characters",
        )
    if await auth_repo.get_auth_user_by_email(request.email):
        raise HTTPException(status_code=409, detail="Email already registered")
    await _check_manager(repo, org, None, request.parent_user_id)

    auth_user = await auth_repo.create_auth_user(
        email=request.email, password=request.password, full_name=request.full_name
    )
    user = await repo.create(
        org_id=org,
        auth_user_id=auth_user.id,
        email=auth_user.email,
        full_name=request.full_name,
        role=request.role,
        role_name=request.role_name,
        parent_user_id=request.parent_user_id,
    )
    await repo.commit()
    log.info("user_created", user_id=str(user.id), org_id=str(org), role=user.role)
    return _user_to_schema(user)


@router.patch("/users/{user_id}", response_model=UserSchema)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    repo: UsersRepoDep,
    current_user: AdminDep,
) -> UserSchema:
    user = await repo.get(parse_id(user_id, "User"), current_user.org_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    values = request.update_values()
    if "parent_user_id" in values:
        await _check_manager(repo, current_user.org_id, user.id, values["parent_user_id"])
    user = await repo.update(user, **values)
    return await _with_counts(repo, user)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    repo: UsersRepoDep,
    current_user: AdminDep,
) -> Response:
    """Delete a profile. Refused for the caller and for anyone who still manages others."""
    user = await repo.get(parse_id(user_id, "User"), current_user.org_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == current_user.profile_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    counts = await repo.count_reports(current_user.org_id)
    if counts.get(user.id, 0):
        raise HTTPException(
            status_code=409,
            detail="This user manages other users. Reassign them before deleting.",
        )

    await repo.delete(user)
    log.info("user_deleted", user_id=str(user.id), org_id=str(current_user.org_id))
    return Response(status_code=204)


@router.put("/users/{user_id}/dashboard-widgets", response_model=UserSchema)
async def update_dashboard_widgets(
    user_id: str,
    request: DashboardWidgetsRequest,
    repo: UsersRepoDep,
    current_user: CurrentUserDep,
) -> UserSchema:
    """Users pick their own widgets; admins may set anyone's."""
    target = parse_id(user_id, "User")
    if target != current_user.profile_id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Cannot change another user's dashboard")

    user = await repo.get(target, current_user.org_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    user = await repo.update(user, dashboard_widgets=list(request.widgets))
    return await _with_counts(repo, user)
