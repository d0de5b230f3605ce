"""Support tickets and their status timestamps."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from crm_pro.models import Ticket, TicketStatus
from crm_pro.services.base import EntityService


def apply_status_transition(
    updates: Mapping[str, Any],
    original: Ticket,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return ``updates`` with ``resolved_at`` / ``closed_at`` made consistent.

    * -> Resolved: ``resolved_at`` set, ``closed_at`` cleared.
    * -> Closed: ``closed_at`` set; ``resolved_at`` also set unless the
      ticket was already Resolved.
    * -> Open / In Progress / On Hold: both cleared.

    Explicit timestamps in ``updates`` win. Without a status change the
    timestamps are passed through untouched.
    """
    now = now or datetime.now(UTC)
    payload = dict(updates)
    status = payload.get("status")
    if status is None or TicketStatus(status) == original.status:
        return payload

    status = TicketStatus(status)
    if status is TicketStatus.RESOLVED:
        payload["resolved_at"] = payload.get("resolved_at") or now
        payload["closed_at"] = None
    elif status is TicketStatus.CLOSED:
        payload["closed_at"] = payload.get("closed_at") or now
        if original.status is not TicketStatus.RESOLVED:
            payload["resolved_at"] = payload.get("resolved_at") or now
    else:
        payload["resolved_at"] = None
        payload["closed_at"] = None
    return payload


class TicketService(EntityService[Ticket]):
    """``ticket_uid`` is generated by the backend on insert."""

    resource = "tickets"
    model = Ticket
    nullable_fields = frozenset({"assigned_to_user_id"})

    async def update(  # type: ignore[override]
        self,
        id: str,
        data: Mapping[str, Any] | BaseModel,
        original: Ticket | None = None,
        now: datetime | None = None,
    ) -> Ticket:
        payload = self._clean(data)
        if original is not None:
            payload = apply_status_transition(payload, original, now)
        return await super().update(id, payload)
