"""Repository for tenant user profiles."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_pro_service.db.models import UserModel


class UsersRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_auth_user(self, auth_user_id: UUID) -> UserModel | None:
        """Profile lookup by identity. Not tenant-filtered: this is how the tenant is found."""
        result = await self._session.execute(
            select(UserModel).where(UserModel.auth_user_id == auth_user_id)
        )
        return result.scalars().first()

    async def get(self, user_id: UUID, org_id: UUID) -> UserModel | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.id == user_id, UserModel.org_id == org_id)
        )
        return result.scalars().first()

    async def list(self, org_id: UUID) -> list[UserModel]:
        result = await self._session.execute(
            select(UserModel).where(UserModel.org_id == org_id).order_by(UserModel.full_name)
        )
        return list(result.scalars().all())

    async def count_reports(self, org_id: UUID) -> dict[UUID, int]:
        """Direct-report count per manager id."""
        result = await self._session.execute(
            select(UserModel.parent_user_id, func.count())
            .where(UserModel.org_id == org_id, UserModel.parent_user_id.is_not(None))
            .group_by(UserModel.parent_user_id)
        )
        return {manager_id: count for manager_id, count in result.all()}

    async def create(
        self,
        org_id: UUID,
        auth_user_id: UUID,
        email: str,
        full_name: str,
        role: str,
        role_name: str | None = None,
        parent_user_id: UUID | None = None,
    ) -> UserModel:
        user = UserModel(
            org_id=org_id,
            auth_user_id=auth_user_id,
            email=email.lower(),
            full_name=full_name,
            role=role,
            role_name=role_name,
            parent_user_id=parent_user_id,
        )
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def update(self, user: UserModel, **values: Any) -> UserModel:
        for key, value in values.items():
            setattr(user, key, value)
        await self._session.commit()
        await self._session.refresh(user)
        return user

    async def delete(self, user: UserModel) -> None:
        await self._session.delete(user)
        await self._session.commit()

    async def commit(self) -> None:
        await self._session.commit()
