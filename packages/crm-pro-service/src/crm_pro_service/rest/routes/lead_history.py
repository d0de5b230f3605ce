"""Lead activity log and lead follow-up endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from crm_pro.models import FollowUpStatus
from fastapi import APIRouter, HTTPException, Query, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import LeadActivitiesRepoDep, LeadFollowUpsRepoDep, LeadsRepoDep
from crm_pro_service.rest.schemas import (
    CreateLeadActivityRequest,
    CreateLeadFollowUpRequest,
    LeadActivitySchema,
    LeadFollowUpSchema,
    UpdateLeadFollowUpRequest,
    opt_id,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def _activity_to_schema(activity) -> LeadActivitySchema:
    return LeadActivitySchema(
        id=str(activity.id),
        org_id=str(activity.org_id),
        lead_id=str(activity.lead_id),
        lead_name=activity.lead.name if activity.lead is not None else None,
        user_id=opt_id(activity.user_id),
        user_full_name=activity.user.full_name if activity.user is not None else "System",
        type=activity.type,
        details=activity.details or "",
        created_at=activity.created_at,
    )


def _follow_up_to_schema(follow_up) -> LeadFollowUpSchema:
    return LeadFollowUpSchema(
        id=str(follow_up.id),
        org_id=str(follow_up.org_id),
        lead_id=str(follow_up.lead_id),
        lead_name=follow_up.lead.name if follow_up.lead is not None else None,
        user_id=opt_id(follow_up.user_id),
        user_full_name=follow_up.user.full_name if follow_up.user is not None else "N/A",
        due_date=follow_up.due_date,
        status=follow_up.status,
        notes=follow_up.notes,
        completed_at=follow_up.completed_at,
        created_at=follow_up.created_at,
        updated_at=follow_up.updated_at,
    )


async def _lead_or_404(leads, lead_id: str, current_user):
    lead = await leads.get(parse_id(lead_id, "Lead"), current_user.org_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


def completion_values(values: dict) -> dict:
    """Stamp ``completed_at`` when a follow-up is completed; clear it for any other status."""
    status = values.get("status")
    if status == FollowUpStatus.COMPLETED:
        if values.get("completed_at") is None:
            values["completed_at"] = datetime.now(UTC)
    elif status is not None:
        values["completed_at"] = None
    return values


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


@router.get("/leads/{lead_id}/activities", response_model=list[LeadActivitySchema])
async def list_lead_activities(
    lead_id: str,
    leads: LeadsRepoDep,
    repo: LeadActivitiesRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> list[LeadActivitySchema]:
    ensure_org(current_user, org_id)
    lead = await _lead_or_404(leads, lead_id, current_user)
    activities = await repo.list(current_user.org_id, lead_id=lead.id)
    return [_activity_to_schema(a) for a in activities]


@router.post("/leads/{lead_id}/activities", response_model=LeadActivitySchema, status_code=201)
async def create_lead_activity(
    lead_id: str,
    request: CreateLeadActivityRequest,
    leads: LeadsRepoDep,
    repo: LeadActivitiesRepoDep,
    current_user: CurrentUserDep,
) -> LeadActivitySchema:
    """Record an activity. ``user_id`` defaults to the caller."""
    lead = await _lead_or_404(leads, lead_id, current_user)
    values = request.create_values()
    values.setdefault("user_id", current_user.profile_id)
    activity = await repo.create(current_user.org_id, lead_id=lead.id, **values)
    return _activity_to_schema(activity)


@router.get("/activities/recent", response_model=list[LeadActivitySchema])
async def recent_activities(
    repo: LeadActivitiesRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    limit: int = Query(default=5, ge=1, le=100),
) -> list[LeadActivitySchema]:
    activities = await repo.recent(ensure_org(current_user, org_id), limit)
    return [_activity_to_schema(a) for a in activities]


# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------


async def _follow_up_or_404(repo, follow_up_id: str, current_user):
    follow_up = await repo.get(parse_id(follow_up_id, "Follow-up"), current_user.org_id)
    if follow_up is None:
        raise HTTPException(status_code=404, detail="Follow-up not found")
    return follow_up


@router.get("/leads/{lead_id}/follow-ups", response_model=list[LeadFollowUpSchema])
async def list_lead_follow_ups(
    lead_id: str,
    leads: LeadsRepoDep,
    repo: LeadFollowUpsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> list[LeadFollowUpSchema]:
    ensure_org(current_user, org_id)
    lead = await _lead_or_404(leads, lead_id, current_user)
    follow_ups = await repo.list(current_user.org_id, lead_id=lead.id)
    return [_follow_up_to_schema(f) for f in follow_ups]


@router.post("/leads/{lead_id}/follow-ups", response_model=LeadFollowUpSchema, status_code=201)
async def create_lead_follow_up(
    lead_id: str,
    request: CreateLeadFollowUpRequest,
    leads: LeadsRepoDep,
    repo: LeadFollowUpsRepoDep,
    current_user: CurrentUserDep,
) -> LeadFollowUpSchema:
    """Schedule a follow-up. ``user_id`` defaults to the caller."""
    lead = await _lead_or_404(leads, lead_id, current_user)
    values = completion_values(request.create_values())
    values.setdefault("user_id", current_user.profile_id)
    follow_up = await repo.create(current_user.org_id, lead_id=lead.id, **values)
    log.info("follow_up_created", lead_id=str(lead.id), follow_up_id=str(follow_up.id))
    return _follow_up_to_schema(follow_up)


@router.get("/follow-ups/upcoming", response_model=list[LeadFollowUpSchema])
async def upcoming_follow_ups(
    repo: LeadFollowUpsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    user_id: str | None = None,
    limit: int = Query(default=5, ge=1, le=100),
) -> list[LeadFollowUpSchema]:
    """Pending follow-ups of ``user_id`` (the caller by default), soonest first."""
    org = ensure_org(current_user, org_id)
    user = parse_id(user_id, "User") if user_id else current_user.profile_id
    follow_ups = await repo.upcoming_for_user(org, user, limit)
    return [_follow_up_to_schema(f) for f in follow_ups]


@router.patch("/follow-ups/{follow_up_id}", response_model=LeadFollowUpSchema)
async def update_follow_up(
    follow_up_id: str,
    request: UpdateLeadFollowUpRequest,
    repo: LeadFollowUpsRepoDep,
    current_user: CurrentUserDep,
) -> LeadFollowUpSchema:
    follow_up = await _follow_up_or_404(repo, follow_up_id, current_user)
    values = completion_values(request.update_values())
    return _follow_up_to_schema(await repo.update(follow_up, **values))


@router.delete("/follow-ups/{follow_up_id}", status_code=204)
async def delete_follow_up(
    follow_up_id: str,
    repo: LeadFollowUpsRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    follow_up = await _follow_up_or_404(repo, follow_up_id, current_user)
    await repo.delete(follow_up)
    return Response(status_code=204)
