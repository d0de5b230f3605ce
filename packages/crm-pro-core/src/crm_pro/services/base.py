"""Shared CRUD façade over one backend resource."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel

from crm_pro.client.http import BackendClient
from crm_pro.errors import NotFoundError

log = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def blank_to_none(data: Mapping[str, Any], fields: frozenset[str]) -> dict[str, Any]:
    """Copy ``data`` with empty-string values of ``fields`` replaced by None."""
    return {k: (None if k in fields and v == "" else v) for k, v in data.items()}


class EntityService(Generic[ModelT]):
    """``list`` / ``get`` / ``add`` / ``update`` / ``delete`` for one resource.

    Subclasses set ``resource`` (the URL segment under ``/api/v1``),
    ``model`` and the foreign-key ``nullable_fields`` that arrive as blank
    strings from forms.
    """

    resource: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    @property
    def path(self) -> str:
        return f"/api/v1/{self.resource}"

    def _parse(self, data: Any) -> ModelT:
        return self.model.model_validate(data)  # type: ignore[return-value]

    def _parse_many(self, data: Any) -> list[ModelT]:
        return [self._parse(row) for row in data or []]

    def _clean(self, data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        return blank_to_none(data, self.nullable_fields)

    async def list(self, org_id: str) -> list[ModelT]:
        data = await self._client.get(self.path, params={"org_id": org_id})
        return self._parse_many(data)

    async def get(self, id: str, org_id: str) -> ModelT | None:
        try:
            data = await self._client.get(f"{self.path}/{id}", params={"org_id": org_id})
        except NotFoundError:
            return None
        return self._parse(data)

    async def add(self, data: Mapping[str, Any] | BaseModel, org_id: str) -> ModelT:
        payload = self._clean(data)
        payload["org_id"] = org_id
        created = self._parse(await self._client.post(self.path, json=payload))
        log.info("entity_created", resource=self.resource, id=getattr(created, "id", None))
        return created

    async def update(self, id: str, data: Mapping[str, Any] | BaseModel) -> ModelT:
        payload = self._clean(data)
        payload.pop("org_id", None)
        return self._parse(await self._client.patch(f"{self.path}/{id}", json=payload))

    async def delete(self, id: str) -> None:
        await self._client.delete(f"{self.path}/{id}")
        log.info("entity_deleted", resource=self.resource, id=id)
