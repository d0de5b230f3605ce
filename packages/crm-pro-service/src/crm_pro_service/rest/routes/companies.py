"""Company endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import CompaniesRepoDep
from crm_pro_service.rest.schemas import (
    CompanySchema,
    CreateCompanyRequest,
    UpdateCompanyRequest,
)

router = APIRouter()


def _company_to_schema(company) -> CompanySchema:
    return CompanySchema(
        id=str(company.id),
        org_id=str(company.org_id),
        name=company.name,
        industry=company.industry,
        website=company.website,
        phone_office=company.phone_office,
        address_street=company.address_street,
        address_city=company.address_city,
        address_state=company.address_state,
        address_postal_code=company.address_postal_code,
        address_country=company.address_country,
        created_at=company.created_at,
        updated_at=company.updated_at,
    )


async def _get_or_404(repo, company_id: str, current_user):
    company = await repo.get(parse_id(company_id, "Company"), current_user.org_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("/companies", response_model=list[CompanySchema])
async def list_companies(
    repo: CompaniesRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> list[CompanySchema]:
    companies = await repo.list(ensure_org(current_user, org_id))
    return [_company_to_schema(c) for c in companies]


@router.get("/companies/{company_id}", response_model=CompanySchema)
async def get_company(
    company_id: str,
    repo: CompaniesRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> CompanySchema:
    ensure_org(current_user, org_id)
    return _company_to_schema(await _get_or_404(repo, company_id, current_user))


@router.post("/companies", response_model=CompanySchema, status_code=201)
async def create_company(
    request: CreateCompanyRequest,
    repo: CompaniesRepoDep,
    current_user: CurrentUserDep,
) -> CompanySchema:
    org = ensure_org(current_user, request.org_id)
    return _company_to_schema(await repo.create(org, **request.create_values()))


@router.patch("/companies/{company_id}", response_model=CompanySchema)
async def update_company(
    company_id: str,
    request: UpdateCompanyRequest,
    repo: CompaniesRepoDep,
    current_user: CurrentUserDep,
) -> CompanySchema:
    company = await _get_or_404(repo, company_id, current_user)
    return _company_to_schema(await repo.update(company, **request.update_values()))


@router.delete("/companies/{company_id}", status_code=204)
async def delete_company(
    company_id: str,
    repo: CompaniesRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    """Delete a company. Its contacts, leads and deals are kept but unlinked."""
    company = await _get_or_404(repo, company_id, current_user)
    await repo.delete(company)
    return Response(status_code=204)
