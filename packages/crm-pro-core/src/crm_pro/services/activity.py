"""Lead activity log and lead follow-ups."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel

from crm_pro.client.http import BackendClient
from crm_pro.models import FollowUpStatus, LeadActivity, LeadFollowUp

log = structlog.get_logger(__name__)


class LeadActivityService:
    """Activities are append-only; they disappear with their lead."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list_for_lead(self, lead_id: str, org_id: str) -> list[LeadActivity]:
        data = await self._client.get(
            f"/api/v1/leads/{lead_id}/activities", params={"org_id": org_id}
        )
        return [LeadActivity.model_validate(row) for row in data or []]

    async def add(
        self,
        lead_id: str,
        type: str,
        details: str,
        user_id: str | None = None,
    ) -> LeadActivity:
        payload: dict[str, Any] = {"type": type, "details": details}
        if user_id:
            payload["user_id"] = user_id
        data = await self._client.post(f"/api/v1/leads/{lead_id}/activities", json=payload)
        return LeadActivity.model_validate(data)

    async def recent(self, org_id: str, limit: int = 5) -> list[LeadActivity]:
        """Newest activities across the organization, with lead names."""
        data = await self._client.get(
            "/api/v1/activities/recent", params={"org_id": org_id, "limit": limit}
        )
        return [LeadActivity.model_validate(row) for row in data or []]


class LeadFollowUpService:
    """Scheduled follow-ups on leads.

    Completing a follow-up stamps ``completed_at`` server-side; moving it
    back to any other status clears it.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list_for_lead(self, lead_id: str, org_id: str) -> list[LeadFollowUp]:
        data = await self._client.get(
            f"/api/v1/leads/{lead_id}/follow-ups", params={"org_id": org_id}
        )
        return [LeadFollowUp.model_validate(row) for row in data or []]

    async def upcoming_for_user(
        self, user_id: str, org_id: str, limit: int = 5
    ) -> list[LeadFollowUp]:
        """Pending follow-ups of ``user_id``, soonest first."""
        data = await self._client.get(
            "/api/v1/follow-ups/upcoming",
            params={"org_id": org_id, "user_id": user_id, "limit": limit},
        )
        return [LeadFollowUp.model_validate(row) for row in data or []]

    async def add(
        self,
        lead_id: str,
        due_date: datetime,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> LeadFollowUp:
        payload: dict[str, Any] = {"due_date": due_date, "status": FollowUpStatus.PENDING}
        if notes:
            payload["notes"] = notes
        if user_id:
            payload["user_id"] = user_id
        data = await self._client.post(f"/api/v1/leads/{lead_id}/follow-ups", json=payload)
        follow_up = LeadFollowUp.model_validate(data)
        log.info("follow_up_scheduled", lead_id=lead_id, follow_up_id=follow_up.id)
        return follow_up

    async def update(
        self, follow_up_id: str, updates: Mapping[str, Any] | BaseModel
    ) -> LeadFollowUp:
        if isinstance(updates, BaseModel):
            updates = updates.model_dump(exclude_unset=True)
        data = await self._client.patch(f"/api/v1/follow-ups/{follow_up_id}", json=dict(updates))
        return LeadFollowUp.model_validate(data)

    async def complete(self, follow_up_id: str) -> LeadFollowUp:
        return await self.update(follow_up_id, {"status": FollowUpStatus.COMPLETED})

    async def delete(self, follow_up_id: str) -> None:
        await self._client.delete(f"/api/v1/follow-ups/{follow_up_id}")
