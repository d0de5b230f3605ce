"""Lead service, including bulk insert and bulk update."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from crm_pro.models import Lead, LeadStatus
from crm_pro.services.base import EntityService

log = structlog.get_logger(__name__)


class LeadService(EntityService[Lead]):
    resource = "leads"
    model = Lead
    nullable_fields = frozenset({"owner_user_id", "company_id", "contact_id"})

    async def bulk_add(self, leads: Sequence[Mapping[str, Any]], org_id: str) -> list[Lead]:
        """Insert many leads at once. Rows without a status become ``New``."""
        if not leads:
            return []
        rows = []
        for lead in leads:
            row = self._clean(lead)
            row["status"] = row.get("status") or LeadStatus.NEW
            rows.append(row)
        data = await self._client.post(f"{self.path}/bulk", json={"org_id": org_id, "leads": rows})
        created = self._parse_many(data)
        log.info("leads_bulk_added", org_id=org_id, count=len(created))
        return created

    async def bulk_update(
        self,
        lead_ids: Sequence[str],
        updates: Mapping[str, Any],
        org_id: str,
    ) -> int:
        """Apply the same status/owner change to many leads. Returns rows changed."""
        if not lead_ids:
            return 0
        data = await self._client.patch(
            f"{self.path}/bulk",
            json={"org_id": org_id, "lead_ids": list(lead_ids), "updates": self._clean(updates)},
        )
        return int(data.get("updated", 0)) if data else 0
