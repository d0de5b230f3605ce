"""Lead endpoints, including bulk insert and bulk update."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import LeadsRepoDep
from crm_pro_service.rest.schemas import (
    BulkCreateLeadsRequest,
    BulkUpdateLeadsRequest,
    BulkUpdateResponse,
    CreateLeadRequest,
    LeadSchema,
    UpdateLeadRequest,
    contact_full_name,
    opt_id,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def _lead_to_schema(lead) -> LeadSchema:
    """Convert an ORM LeadModel to the REST LeadSchema."""
    return LeadSchema(
        id=str(lead.id),
        org_id=str(lead.org_id),
        name=lead.name,
        email=lead.email,
        mobile=lead.mobile or "",
        source=lead.source or "",
        status=lead.status,
        stage=lead.stage,
        owner_user_id=opt_id(lead.owner_user_id),
        owner_name=lead.owner.full_name if lead.owner is not None else "Unassigned",
        company_id=opt_id(lead.company_id),
        company_name=lead.company.name if lead.company is not None else None,
        contact_id=opt_id(lead.contact_id),
        contact_name=contact_full_name(lead.contact),
        notes=lead.notes,
        created_at=lead.created_at,
        updated_at=lead.updated_at,
    )


async def _get_or_404(repo, lead_id: str, current_user):
    lead = await repo.get(parse_id(lead_id, "Lead"), current_user.org_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


@router.get("/leads", response_model=list[LeadSchema])
async def list_leads(
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    status: str | None = None,
    owner_user_id: str | None = None,
) -> list[LeadSchema]:
    org = ensure_org(current_user, org_id)
    owner = parse_id(owner_user_id, "User") if owner_user_id else None
    leads = await repo.list(org, status=status, owner_user_id=owner)
    return [_lead_to_schema(lead) for lead in leads]


@router.post("/leads/bulk", response_model=list[LeadSchema], status_code=201)
async def bulk_create_leads(
    request: BulkCreateLeadsRequest,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
) -> list[LeadSchema]:
    """Insert many leads at once (CSV import)."""
    org = ensure_org(current_user, request.org_id)
    if not request.leads:
        return []
    leads = await repo.bulk_create(org, [row.create_values() for row in request.leads])
    log.info("leads_bulk_created", org_id=str(org), count=len(leads))
    return [_lead_to_schema(lead) for lead in leads]


@router.patch("/leads/bulk", response_model=BulkUpdateResponse)
async def bulk_update_leads(
    request: BulkUpdateLeadsRequest,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
) -> BulkUpdateResponse:
    """Apply the same field updates (owner, status, ...) to many leads."""
    org = ensure_org(current_user, request.org_id)
    updated = await repo.bulk_update(org, request.lead_ids, request.updates.update_values())
    log.info(
        "leads_bulk_updated", org_id=str(org), requested=len(request.lead_ids), updated=updated
    )
    return BulkUpdateResponse(updated=updated)


@router.get("/leads/{lead_id}", response_model=LeadSchema)
async def get_lead(
    lead_id: str,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> LeadSchema:
    ensure_org(current_user, org_id)
    return _lead_to_schema(await _get_or_404(repo, lead_id, current_user))


@router.post("/leads", response_model=LeadSchema, status_code=201)
async def create_lead(
    request: CreateLeadRequest,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
) -> LeadSchema:
    org = ensure_org(current_user, request.org_id)
    lead = await repo.create(org, **request.create_values())
    return _lead_to_schema(lead)


@router.patch("/leads/{lead_id}", response_model=LeadSchema)
async def update_lead(
    lead_id: str,
    request: UpdateLeadRequest,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
) -> LeadSchema:
    lead = await _get_or_404(repo, lead_id, current_user)
    lead = await repo.update(lead, **request.update_values())
    return _lead_to_schema(lead)


@router.delete("/leads/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: str,
    repo: LeadsRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    """Delete a lead and its deals."""
    lead = await _get_or_404(repo, lead_id, current_user)
    await repo.delete(lead)
    return Response(status_code=204)
