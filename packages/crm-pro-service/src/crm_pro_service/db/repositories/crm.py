"""Repositories for companies, contacts, products, deals, tasks and tickets."""

from __future__ import annotations

import secrets
import string
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select, update

from crm_pro_service.db.models import (
    CompanyModel,
    ContactModel,
    DealItemModel,
    DealModel,
    LeadModel,
    ProductModel,
    TaskCommentModel,
    TaskModel,
    TicketModel,
)
from crm_pro_service.db.repositories.base import TenantRepo

_UID_ALPHABET = string.ascii_uppercase + string.digits


class CompaniesRepo(TenantRepo[CompanyModel]):
    model = CompanyModel

    async def delete(self, row: CompanyModel) -> None:
        """Unlink contacts, leads and deals, then delete the company."""
        for linked in (ContactModel, LeadModel, DealModel):
            await self._session.execute(
                update(linked)
                .where(linked.company_id == row.id, linked.org_id == row.org_id)
                .values(company_id=None)
            )
        await super().delete(row)


class ContactsRepo(TenantRepo[ContactModel]):
    model = ContactModel

    async def delete(self, row: ContactModel) -> None:
        """Unlink leads and deals, then delete the contact."""
        for linked in (LeadModel, DealModel):
            await self._session.execute(
                update(linked)
                .where(linked.contact_id == row.id, linked.org_id == row.org_id)
                .values(contact_id=None)
            )
        await super().delete(row)


class ProductsRepo(TenantRepo[ProductModel]):
    model = ProductModel

    def _ordering(self):
        return ProductModel.name.asc()

    async def bulk_create(self, org_id: UUID, rows: list[dict[str, Any]]) -> list[ProductModel]:
        products = [ProductModel(org_id=org_id, **row) for row in rows]
        self._session.add_all(products)
        await self._session.commit()
        for product in products:
            await self._session.refresh(product)
        return products

    async def delete(self, row: ProductModel) -> None:
        """Detach deal items from the product, then delete it. Items keep their name and price."""
        await self._session.execute(
            update(DealItemModel).where(DealItemModel.product_id == row.id).values(product_id=None)
        )
        await super().delete(row)


def _build_items(items: list[dict[str, Any]]) -> list[DealItemModel]:
    return [
        DealItemModel(
            product_id=item.get("product_id"),
            product_name=item["product_name"],
            quantity=item.get("quantity", 1),
            unit_price=item.get("unit_price", 0),
            total_price=item.get("quantity", 1) * item.get("unit_price", 0),
        )
        for item in items
    ]


class DealsRepo(TenantRepo[DealModel]):
    """``total_value`` is always the sum of item totals when items are given."""

    model = DealModel

    async def create(
        self, org_id: UUID, items: list[dict[str, Any]] | None = None, **values: Any
    ) -> DealModel:
        deal_items = _build_items(items or [])
        if deal_items:
            values["total_value"] = sum(i.total_price for i in deal_items)
        return await super().create(org_id, items=deal_items, **values)

    async def update(
        self, row: DealModel, items: list[dict[str, Any]] | None = None, **values: Any
    ) -> DealModel:
        if items is not None:
            row.items = _build_items(items)
            values["total_value"] = sum(i.total_price for i in row.items)
        return await super().update(row, **values)


class _AssignedRepo:
    async def list_visible(self, org_id: UUID, user_id: UUID | None = None, **filters: Any):
        """All rows for admins; for ``user_id``, rows assigned to or created by them."""
        query = self._select(org_id)
        if user_id is not None:
            query = query.where(
                or_(
                    self.model.assigned_to_user_id == user_id,
                    self.model.created_by_user_id == user_id,
                )
            )
        for column, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, column) == value)
        result = await self._session.execute(query.order_by(self._ordering()))
        return list(result.scalars().all())


class TasksRepo(_AssignedRepo, TenantRepo[TaskModel]):
    model = TaskModel


class TaskCommentsRepo(TenantRepo[TaskCommentModel]):
    model = TaskCommentModel

    def _ordering(self):
        return TaskCommentModel.created_at.asc()


def new_ticket_uid(now: datetime | None = None) -> str:
    year = (now or datetime.now(UTC)).year
    suffix = "".join(secrets.choice(_UID_ALPHABET) for _ in range(5))
    return f"TCK-{year}-{suffix}"


class TicketsRepo(_AssignedRepo, TenantRepo[TicketModel]):
    model = TicketModel

    async def create(self, org_id: UUID, **values: Any) -> TicketModel:
        values.setdefault("ticket_uid", new_ticket_uid())
        return await super().create(org_id, **values)

    async def get_by_uid(self, ticket_uid: str, org_id: UUID) -> TicketModel | None:
        result = await self._session.execute(
            select(TicketModel).where(
                TicketModel.ticket_uid == ticket_uid, TicketModel.org_id == org_id
            )
        )
        return result.scalars().first()
