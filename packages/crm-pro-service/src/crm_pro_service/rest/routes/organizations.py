"""Organization lookup."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org
from crm_pro_service.db.deps import AuthRepoDep
from crm_pro_service.rest.schemas import OrganizationSchema

router = APIRouter()


@router.get("/organizations/{org_id}", response_model=OrganizationSchema)
async def get_organization(
    org_id: str, repo: AuthRepoDep, current_user: CurrentUserDep
) -> OrganizationSchema:
    org = await repo.get_org(ensure_org(current_user, org_id))
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return OrganizationSchema(id=str(org.id), name=org.name, created_at=org.created_at)
