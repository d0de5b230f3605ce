"""Tenant user profiles. Also serves as the auth machine's profile resolver."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from crm_pro.client.http import BackendClient
from crm_pro.errors import NotFoundError
from crm_pro.models import Role, UserProfile
from crm_pro.services.base import EntityService

if TYPE_CHECKING:
    from crm_pro.client.identity import HttpIdentityProvider

log = structlog.get_logger(__name__)


class UserService(EntityService[UserProfile]):
    """Profile CRUD.

    Creating, editing and deleting other users is admin-only; the backend
    enforces that from the caller's profile row.
    """

    resource = "users"
    model = UserProfile
    nullable_fields = frozenset({"parent_user_id", "role_name"})

    def __init__(self, client: BackendClient, identity: HttpIdentityProvider | None = None) -> None:
        super().__init__(client)
        self._identity = identity

    async def get_by_auth_user(self, auth_user_id: str) -> UserProfile | None:
        try:
            data = await self._client.get(f"{self.path}/by-auth/{auth_user_id}")
        except NotFoundError:
            return None
        return self._parse(data)

    async def resolve(self, auth_user_id: str) -> UserProfile | None:
        return await self.get_by_auth_user(auth_user_id)

    async def add_user(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: Role,
        org_id: str,
        role_name: str | None = None,
        parent_user_id: str | None = None,
    ) -> UserProfile:
        """Create an identity plus its profile in ``org_id``."""
        payload = self._clean(
            {
                "email": email,
                "password": password,
                "full_name": full_name,
                "role": role,
                "role_name": role_name,
                "parent_user_id": parent_user_id,
                "org_id": org_id,
            }
        )
        profile = self._parse(await self._client.post(self.path, json=payload))
        log.info("user_added", user_id=profile.id, org_id=org_id, role=profile.role.value)
        return profile

    async def update_user(self, user_id: str, updates: dict[str, Any]) -> UserProfile:
        """Update name, role, job title or manager. Blank manager/title become None."""
        return await self.update(user_id, updates)

    async def update_current_user(
        self,
        auth_user_id: str,
        *,
        full_name: str | None = None,
        password: str | None = None,
    ) -> UserProfile:
        """Self-service name/password change for the signed-in user.

        Goes through the identity provider when one is attached so the auth
        state machine sees ``USER_UPDATED`` and re-resolves the profile.
        """
        if self._identity is not None:
            await self._identity.update_user(password=password, full_name=full_name)
        else:
            payload: dict[str, Any] = {}
            if password:
                payload["password"] = password
            if full_name:
                payload["full_name"] = full_name
            await self._client.patch("/api/v1/auth/user", json=payload)

        profile = await self.get_by_auth_user(auth_user_id)
        if profile is None:
            raise NotFoundError(404, "Failed to retrieve profile after update.")
        return profile

    async def delete_user(self, user_id: str) -> None:
        """Delete a profile. Refused with ``ConflictError`` while it manages others."""
        await self.delete(user_id)

    async def update_dashboard_widgets(self, user_id: str, widgets: Sequence[str]) -> UserProfile:
        data = await self._client.put(
            f"{self.path}/{user_id}/dashboard-widgets", json={"widgets": list(widgets)}
        )
        return self._parse(data)
