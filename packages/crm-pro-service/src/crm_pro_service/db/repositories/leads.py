"""Repository for leads."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update

from crm_pro_service.db.models import (
    CompanyModel,
    ContactModel,
    DealModel,
    LeadActivityModel,
    LeadFollowUpModel,
    LeadModel,
)
from crm_pro_service.db.repositories.base import TenantRepo


class LeadsRepo(TenantRepo[LeadModel]):
    model = LeadModel

    async def _company_ids_by_name(self, org_id: UUID, names: set[str]) -> dict[str, UUID]:
        if not names:
            return {}
        result = await self._session.execute(
            select(CompanyModel.name, CompanyModel.id).where(
                CompanyModel.org_id == org_id,
                func.lower(CompanyModel.name).in_([n.lower() for n in names]),
            )
        )
        return {name.lower(): id_ for name, id_ in result.all()}

    async def _contact_ids_by_name(self, org_id: UUID, names: set[str]) -> dict[str, UUID]:
        if not names:
            return {}
        full_name = func.lower(ContactModel.first_name + " " + ContactModel.last_name)
        result = await self._session.execute(
            select(full_name, ContactModel.id).where(
                ContactModel.org_id == org_id,
                full_name.in_([n.lower() for n in names]),
            )
        )
        return {name: id_ for name, id_ in result.all()}

    async def bulk_create(self, org_id: UUID, rows: list[dict[str, Any]]) -> list[LeadModel]:
        """Insert many leads in one transaction.

        ``company_name`` / ``contact_name`` are matched case-insensitively to
        existing companies and contacts of the org; unmatched names are dropped.
        """
        companies = await self._company_ids_by_name(
            org_id, {r["company_name"] for r in rows if r.get("company_name")}
        )
        contacts = await self._contact_ids_by_name(
            org_id, {r["contact_name"] for r in rows if r.get("contact_name")}
        )

        leads = []
        for row in rows:
            values = dict(row)
            company_name = values.pop("company_name", None)
            contact_name = values.pop("contact_name", None)
            if company_name and not values.get("company_id"):
                values["company_id"] = companies.get(company_name.lower())
            if contact_name and not values.get("contact_id"):
                values["contact_id"] = contacts.get(contact_name.lower())
            lead = LeadModel(org_id=org_id, **values)
            self._session.add(lead)
            leads.append(lead)

        await self._session.commit()
        for lead in leads:
            await self._session.refresh(lead)
        return leads

    async def bulk_update(self, org_id: UUID, lead_ids: list[UUID], values: dict[str, Any]) -> int:
        if not lead_ids or not values:
            return 0
        result = await self._session.execute(
            update(LeadModel)
            .where(LeadModel.org_id == org_id, LeadModel.id.in_(lead_ids))
            .values(**values)
        )
        await self._session.commit()
        return result.rowcount or 0

    async def delete(self, row: LeadModel) -> None:
        """Delete a lead together with its deals, activities and follow-ups."""
        for owned in (DealModel, LeadActivityModel, LeadFollowUpModel):
            await self._session.execute(
                delete(owned).where(owned.lead_id == row.id, owned.org_id == row.org_id)
            )
        await super().delete(row)
