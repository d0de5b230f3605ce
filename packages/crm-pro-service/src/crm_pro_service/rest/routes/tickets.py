"""Support ticket endpoints. Visibility follows the task rules."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import TicketsRepoDep
from crm_pro_service.rest.routes.tasks import visible_to
from crm_pro_service.rest.schemas import (
    CreateTicketRequest,
    TicketSchema,
    UpdateTicketRequest,
    opt_id,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def _ticket_to_schema(ticket) -> TicketSchema:
    assigned_to, created_by = ticket.assigned_to, ticket.created_by
    return TicketSchema(
        id=str(ticket.id),
        org_id=str(ticket.org_id),
        ticket_uid=ticket.ticket_uid,
        subject=ticket.subject,
        description=ticket.description or "",
        status=ticket.status,
        priority=ticket.priority,
        requester_info=ticket.requester_info,
        assigned_to_user_id=opt_id(ticket.assigned_to_user_id),
        assigned_to_user_name=assigned_to.full_name if assigned_to is not None else "Unassigned",
        created_by_user_id=opt_id(ticket.created_by_user_id),
        created_by_user_name=created_by.full_name if created_by is not None else "N/A",
        related_lead_id=opt_id(ticket.related_lead_id),
        related_company_id=opt_id(ticket.related_company_id),
        related_contact_id=opt_id(ticket.related_contact_id),
        resolved_at=ticket.resolved_at,
        closed_at=ticket.closed_at,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


async def _get_or_404(repo, ticket_id: str, current_user):
    ticket = await repo.get(parse_id(ticket_id, "Ticket"), current_user.org_id)
    if ticket is None or not visible_to(ticket, current_user):
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("/tickets", response_model=list[TicketSchema])
async def list_tickets(
    repo: TicketsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    status: str | None = None,
    priority: str | None = None,
) -> list[TicketSchema]:
    org = ensure_org(current_user, org_id)
    user_id = None if current_user.is_admin else current_user.profile_id
    tickets = await repo.list_visible(org, user_id=user_id, status=status, priority=priority)
    return [_ticket_to_schema(t) for t in tickets]


@router.get("/tickets/{ticket_id}", response_model=TicketSchema)
async def get_ticket(
    ticket_id: str,
    repo: TicketsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> TicketSchema:
    ensure_org(current_user, org_id)
    return _ticket_to_schema(await _get_or_404(repo, ticket_id, current_user))


@router.post("/tickets", response_model=TicketSchema, status_code=201)
async def create_ticket(
    request: CreateTicketRequest,
    repo: TicketsRepoDep,
    current_user: CurrentUserDep,
) -> TicketSchema:
    """Open a ticket. The ``TCK-<year>-<code>`` uid is generated here."""
    org = ensure_org(current_user, request.org_id)
    ticket = await repo.create(
        org, created_by_user_id=current_user.profile_id, **request.create_values()
    )
    log.info("ticket_created", ticket_uid=ticket.ticket_uid, org_id=str(org))
    return _ticket_to_schema(ticket)


@router.patch("/tickets/{ticket_id}", response_model=TicketSchema)
async def update_ticket(
    ticket_id: str,
    request: UpdateTicketRequest,
    repo: TicketsRepoDep,
    current_user: CurrentUserDep,
) -> TicketSchema:
    ticket = await _get_or_404(repo, ticket_id, current_user)
    return _ticket_to_schema(await repo.update(ticket, **request.update_values()))


@router.delete("/tickets/{ticket_id}", status_code=204)
async def delete_ticket(
    ticket_id: str,
    repo: TicketsRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    ticket = await _get_or_404(repo, ticket_id, current_user)
    await repo.delete(ticket)
    return Response(status_code=204)
