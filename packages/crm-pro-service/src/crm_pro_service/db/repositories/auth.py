"""Repository for identities, organizations and login sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_pro_service.auth.passwords import hash_password
from crm_pro_service.db.models import AuthSessionModel, AuthUserModel, OrganizationModel


class AuthRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_org(self, name: str) -> OrganizationModel:
        org = OrganizationModel(name=name)
        self._session.add(org)
        await self._session.flush()
        await self._session.refresh(org)
        return org

    async def get_org(self, org_id: UUID) -> OrganizationModel | None:
        return await self._session.get(OrganizationModel, org_id)

    async def create_auth_user(
        self, email: str, password: str, full_name: str | None = None
    ) -> AuthUserModel:
        """Create an identity with a bcrypt-hashed password."""
        user = AuthUserModel(
            email=email.lower(),
            password_hash=hash_password(password),
            full_name=full_name,
        )
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def get_auth_user(self, auth_user_id: UUID) -> AuthUserModel | None:
        return await self._session.get(AuthUserModel, auth_user_id)

    async def get_auth_user_by_email(self, email: str) -> AuthUserModel | None:
        result = await self._session.execute(
            select(AuthUserModel).where(AuthUserModel.email == email.lower())
        )
        return result.scalars().first()

    async def update_auth_user(
        self,
        user: AuthUserModel,
        password: str | None = None,
        full_name: str | None = None,
    ) -> AuthUserModel:
        if password:
            user.password_hash = hash_password(password)
        if full_name is not None:
            user.full_name = full_name
        await self._session.flush()
        return user

    async def create_session(
        self, auth_user_id: UUID, refresh_jti: str, expires_at: datetime
    ) -> AuthSessionModel:
        row = AuthSessionModel(
            auth_user_id=auth_user_id, refresh_jti=refresh_jti, expires_at=expires_at
        )
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def get_session(self, session_id: UUID) -> AuthSessionModel | None:
        return await self._session.get(AuthSessionModel, session_id)

    async def rotate_session(
        self, row: AuthSessionModel, refresh_jti: str, expires_at: datetime
    ) -> AuthSessionModel:
        row.refresh_jti = refresh_jti
        row.expires_at = expires_at
        await self._session.flush()
        return row

    async def revoke_session(self, row: AuthSessionModel) -> None:
        row.revoked_at = datetime.now(UTC)
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()
