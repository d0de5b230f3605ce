"""Repositories for lead activities and lead follow-ups."""

from __future__ import annotations

from uuid import UUID

from crm_pro_service.db.models import LeadActivityModel, LeadFollowUpModel
from crm_pro_service.db.repositories.base import TenantRepo


class LeadActivitiesRepo(TenantRepo[LeadActivityModel]):
    model = LeadActivityModel

    async def recent(self, org_id: UUID, limit: int = 5) -> list[LeadActivityModel]:
        """Newest activities across the organization."""
        result = await self._session.execute(
            self._select(org_id).order_by(self._ordering()).limit(limit)
        )
        return list(result.scalars().all())


class LeadFollowUpsRepo(TenantRepo[LeadFollowUpModel]):
    model = LeadFollowUpModel

    def _ordering(self):
        return LeadFollowUpModel.due_date.asc()

    async def upcoming_for_user(
        self, org_id: UUID, user_id: UUID, limit: int = 5
    ) -> list[LeadFollowUpModel]:
        """Pending follow-ups assigned to ``user_id``, soonest first."""
        query = self._select(org_id).where(
            LeadFollowUpModel.user_id == user_id,
            LeadFollowUpModel.status == "pending",
        )
        result = await self._session.execute(query.order_by(self._ordering()).limit(limit))
        return list(result.scalars().all())
