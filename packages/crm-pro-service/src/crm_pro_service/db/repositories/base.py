"""Tenant-scoped CRUD shared by the entity repositories."""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_pro_service.db.models import Base

M = TypeVar("M", bound=Base)


class TenantRepo(Generic[M]):
    """Every query is filtered by ``org_id``; rows of other tenants are invisible."""

    model: ClassVar[type[Base]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self, org_id: UUID):
        return select(self.model).where(self.model.org_id == org_id)

    def _ordering(self):
        return self.model.created_at.desc()

    async def list(self, org_id: UUID, **filters: Any) -> list[M]:
        query = self._select(org_id)
        for column, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, column) == value)
        query = query.order_by(self._ordering())
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def get(self, id: UUID, org_id: UUID) -> M | None:
        result = await self._session.execute(self._select(org_id).where(self.model.id == id))
        return result.scalars().first()

    async def create(self, org_id: UUID, **values: Any) -> M:
        row = self.model(org_id=org_id, **values)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return row

    async def update(self, row: M, **values: Any) -> M:
        for key, value in values.items():
            if hasattr(row, key):
                setattr(row, key, value)
        await self._session.commit()
        await self._session.refresh(row)
        return row

    async def delete(self, row: M) -> None:
        await self._session.delete(row)
        await self._session.commit()
