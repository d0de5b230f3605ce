"""Companies, contacts, products, deals, tasks and organizations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from crm_pro.client.http import BackendClient
from crm_pro.errors import NotFoundError
from crm_pro.models import Company, Contact, Deal, Organization, Product, Task, TaskComment
from crm_pro.services.base import EntityService

log = structlog.get_logger(__name__)


class CompanyService(EntityService[Company]):
    """Deleting a company unlinks its contacts, leads and deals server-side."""

    resource = "companies"
    model = Company


class ContactService(EntityService[Contact]):
    resource = "contacts"
    model = Contact
    nullable_fields = frozenset({"company_id"})

    async def list_for_company(self, company_id: str, org_id: str) -> list[Contact]:
        data = await self._client.get(
            self.path, params={"org_id": org_id, "company_id": company_id}
        )
        return self._parse_many(data)


class ProductService(EntityService[Product]):
    """The catalogue deal items are picked from. Writes are admin-only."""

    resource = "products"
    model = Product

    async def bulk_add(
        self, products: Sequence[Mapping[str, Any]], org_id: str
    ) -> list[Product]:
        if not products:
            return []
        data = await self._client.post(
            f"{self.path}/bulk",
            json={"org_id": org_id, "products": [self._clean(p) for p in products]},
        )
        created = self._parse_many(data)
        log.info("products_bulk_added", org_id=org_id, count=len(created))
        return created


class DealService(EntityService[Deal]):
    """``total_value`` is always computed by the backend from the items.

    Items may reference a product by ``product_id``; its name and price fill
    in whatever the item leaves out.
    """

    resource = "deals"
    model = Deal
    nullable_fields = frozenset({"lead_id", "company_id", "contact_id"})

    async def list_for_lead(self, lead_id: str, org_id: str) -> list[Deal]:
        data = await self._client.get(self.path, params={"org_id": org_id, "lead_id": lead_id})
        return self._parse_many(data)


class TaskService(EntityService[Task]):
    resource = "tasks"
    model = Task
    nullable_fields = frozenset(
        {"assigned_to_user_id", "related_lead_id", "related_company_id", "related_contact_id"}
    )

    async def comments(self, task_id: str) -> list[TaskComment]:
        """Comments on a task, oldest first."""
        data = await self._client.get(f"{self.path}/{task_id}/comments")
        return [TaskComment.model_validate(row) for row in data or []]

    async def add_comment(self, task_id: str, comment: str) -> TaskComment:
        data = await self._client.post(f"{self.path}/{task_id}/comments", json={"comment": comment})
        return TaskComment.model_validate(data)


class OrganizationService:
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def get(self, org_id: str) -> Organization | None:
        try:
            data = await self._client.get(f"/api/v1/organizations/{org_id}")
        except NotFoundError:
            return None
        return Organization.model_validate(data)
