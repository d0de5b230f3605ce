"""Contact endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from crm_pro_service.auth.deps import CurrentUserDep, ensure_org, parse_id
from crm_pro_service.db.deps import ContactsRepoDep
from crm_pro_service.rest.schemas import (
    ContactSchema,
    CreateContactRequest,
    UpdateContactRequest,
    opt_id,
)

router = APIRouter()


def _contact_to_schema(contact) -> ContactSchema:
    return ContactSchema(
        id=str(contact.id),
        org_id=str(contact.org_id),
        company_id=opt_id(contact.company_id),
        company_name=contact.company.name if contact.company is not None else None,
        first_name=contact.first_name,
        last_name=contact.last_name or "",
        email_primary=contact.email_primary,
        phone_work=contact.phone_work,
        phone_mobile=contact.phone_mobile,
        designation=contact.designation,
        created_at=contact.created_at,
        updated_at=contact.updated_at,
    )


async def _get_or_404(repo, contact_id: str, current_user):
    contact = await repo.get(parse_id(contact_id, "Contact"), current_user.org_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.get("/contacts", response_model=list[ContactSchema])
async def list_contacts(
    repo: ContactsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
    company_id: str | None = None,
) -> list[ContactSchema]:
    org = ensure_org(current_user, org_id)
    company = parse_id(company_id, "Company") if company_id else None
    contacts = await repo.list(org, company_id=company)
    return [_contact_to_schema(c) for c in contacts]


@router.get("/contacts/{contact_id}", response_model=ContactSchema)
async def get_contact(
    contact_id: str,
    repo: ContactsRepoDep,
    current_user: CurrentUserDep,
    org_id: str | None = None,
) -> ContactSchema:
    ensure_org(current_user, org_id)
    return _contact_to_schema(await _get_or_404(repo, contact_id, current_user))


@router.post("/contacts", response_model=ContactSchema, status_code=201)
async def create_contact(
    request: CreateContactRequest,
    repo: ContactsRepoDep,
    current_user: CurrentUserDep,
) -> ContactSchema:
    org = ensure_org(current_user, request.org_id)
    return _contact_to_schema(await repo.create(org, **request.create_values()))


@router.patch("/contacts/{contact_id}", response_model=ContactSchema)
async def update_contact(
    contact_id: str,
    request: UpdateContactRequest,
    repo: ContactsRepoDep,
    current_user: CurrentUserDep,
) -> ContactSchema:
    contact = await _get_or_404(repo, contact_id, current_user)
    return _contact_to_schema(await repo.update(contact, **request.update_values()))


@router.delete("/contacts/{contact_id}", status_code=204)
async def delete_contact(
    contact_id: str,
    repo: ContactsRepoDep,
    current_user: CurrentUserDep,
) -> Response:
    """Delete a contact. Leads and deals pointing at it are unlinked."""
    contact = await _get_or_404(repo, contact_id, current_user)
    await repo.delete(contact)
    return Response(status_code=204)
