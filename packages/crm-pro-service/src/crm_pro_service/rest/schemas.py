"""Pydantic request/response models for REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from crm_pro.models import (
    DealStatus,
    FollowUpStatus,
    LeadStatus,
    Priority,
    Role,
    TaskStatus,
    TicketStatus,
)
from pydantic import BaseModel, ConfigDict, Field, model_validator


def opt_id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def contact_full_name(contact) -> str | None:
    if contact is None:
        return None
    return f"{contact.first_name} {contact.last_name or ''}".strip()


class _Request(BaseModel):
    """Request bodies store enum members as their plain string values.

    ``not_null`` names columns that may be omitted but never set to None.
    """

    model_config = ConfigDict(use_enum_values=True)
    not_null: ClassVar[frozenset[str]] = frozenset()

    def create_values(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"org_id"})

    def update_values(self) -> dict[str, Any]:
        values = self.model_dump(exclude_unset=True, exclude={"org_id"})
        return {k: v for k, v in values.items() if v is not None or k not in self.not_null}


# ---------------------------------------------------------------------------
# Users / organizations
# ---------------------------------------------------------------------------


class UserSchema(BaseModel):
    id: str
    auth_user_id: str
    email: str
    full_name: str
    role: str
    org_id: str
    parent_user_id: str | None = None
    role_name: str | None = None
    manager_name: str | None = None
    manages_users_count: int = 0
    dashboard_widgets: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class CreateUserRequest(_Request):
    email: str
    password: str
    full_name: str
    role: Role = Role.USER
    role_name: str | None = None
    parent_user_id: UUID | None = None
    org_id: UUID | None = None


class UpdateUserRequest(_Request):
    not_null = frozenset({"full_name", "role"})

    full_name: str | None = None
    role: Role | None = None
    role_name: str | None = None
    parent_user_id: UUID | None = None


class DashboardWidgetsRequest(BaseModel):
    widgets: list[str]


class OrganizationSchema(BaseModel):
    id: str
    name: str
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Companies / contacts
# ---------------------------------------------------------------------------


class CompanySchema(BaseModel):
    id: str
    org_id: str
    name: str
    industry: str | None = None
    website: str | None = None
    phone_office: str | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CompanyFields(_Request):
    not_null = frozenset({"name"})

    industry: str | None = None
    website: str | None = None
    phone_office: str | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None


class CreateCompanyRequest(CompanyFields):
    name: str = Field(min_length=1)
    org_id: UUID | None = None


class UpdateCompanyRequest(CompanyFields):
    name: str | None = Field(default=None, min_length=1)


class ContactSchema(BaseModel):
    id: str
    org_id: str
    company_id: str | None = None
    company_name: str | None = None
    first_name: str
    last_name: str
    email_primary: str | None = None
    phone_work: str | None = None
    phone_mobile: str | None = None
    designation: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactFields(_Request):
    not_null = frozenset({"first_name", "last_name"})

    company_id: UUID | None = None
    last_name: str | None = None
    email_primary: str | None = None
    phone_work: str | None = None
    phone_mobile: str | None = None
    designation: str | None = None


class CreateContactRequest(ContactFields):
    first_name: str = Field(min_length=1)
    last_name: str = ""
    org_id: UUID | None = None


class UpdateContactRequest(ContactFields):
    first_name: str | None = Field(default=None, min_length=1)


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


class LeadSchema(BaseModel):
    id: str
    org_id: str
    name: str
    email: str
    mobile: str = ""
    source: str = ""
    status: str
    stage: str | None = None
    owner_user_id: str | None = None
    owner_name: str = "Unassigned"
    company_id: str | None = None
    company_name: str | None = None
    contact_id: str | None = None
    contact_name: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LeadFields(_Request):
    not_null = frozenset({"name", "email", "mobile", "source", "status"})

    mobile: str | None = None
    source: str | None = None
    stage: str | None = None
    owner_user_id: UUID | None = None
    company_id: UUID | None = None
    contact_id: UUID | None = None
    notes: str | None = None


class CreateLeadRequest(LeadFields):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    status: LeadStatus = LeadStatus.NEW
    org_id: UUID | None = None


class UpdateLeadRequest(LeadFields):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, min_length=1)
    status: LeadStatus | None = None


class ImportedLead(CreateLeadRequest):
    """A bulk-insert row; company and contact may be given by name."""

    company_name: str | None = None
    contact_name: str | None = None


class BulkCreateLeadsRequest(BaseModel):
    org_id: UUID | None = None
    leads: list[ImportedLead]


class BulkUpdateLeadsRequest(BaseModel):
    org_id: UUID | None = None
    lead_ids: list[UUID]
    updates: UpdateLeadRequest


class BulkUpdateResponse(BaseModel):
    updated: int


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductSchema(BaseModel):
    id: str
    org_id: str
    name: str
    description: str | None = None
    price: float = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductFields(_Request):
    not_null = frozenset({"name", "price"})

    description: str | None = None


class CreateProductRequest(ProductFields):
    name: str = Field(min_length=1)
    price: float = Field(default=0, ge=0)
    org_id: UUID | None = None


class UpdateProductRequest(ProductFields):
    name: str | None = Field(default=None, min_length=1)
    price: float | None = Field(default=None, ge=0)


class BulkCreateProductsRequest(BaseModel):
    org_id: UUID | None = None
    products: list[CreateProductRequest]


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------


class DealItemSchema(BaseModel):
    id: str | None = None
    product_id: str | None = None
    product_name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0, ge=0)
    total_price: float = 0


class DealItemRequest(BaseModel):
    """A line item. With ``product_id``, name and price default to the product's."""

    product_id: UUID | None = None
    product_name: str | None = Field(default=None, min_length=1)
    quantity: int = Field(default=1, ge=1)
    unit_price: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _names_a_product(self) -> DealItemRequest:
        if self.product_id is None and self.product_name is None:
            raise ValueError("A deal item needs a product_name or a product_id")
        return self


class DealSchema(BaseModel):
    id: str
    org_id: str
    deal_name: str
    status: str
    total_value: float = 0
    lead_id: str | None = None
    lead_name: str | None = None
    company_id: str | None = None
    company_name: str | None = None
    contact_id: str | None = None
    contact_name: str | None = None
    created_by_user_id: str | None = None
    created_by_user_name: str | None = None
    items: list[DealItemSchema] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DealFields(_Request):
    not_null = frozenset({"deal_name", "status", "total_value"})

    lead_id: UUID | None = None
    company_id: UUID | None = None
    contact_id: UUID | None = None
    total_value: float | None = Field(default=None, ge=0)
    items: list[DealItemRequest] | None = None


class CreateDealRequest(DealFields):
    deal_name: str = Field(min_length=1)
    status: DealStatus = DealStatus.DRAFT
    created_by_user_id: UUID | None = None
    org_id: UUID | None = None


class UpdateDealRequest(DealFields):
    deal_name: str | None = Field(default=None, min_length=1)
    status: DealStatus | None = None


# ---------------------------------------------------------------------------
# Tasks / tickets
# ---------------------------------------------------------------------------


class TaskSchema(BaseModel):
    id: str
    org_id: str
    title: str
    description: str | None = None
    status: str
    priority: str
    assigned_to_user_id: str | None = None
    assigned_to_user_name: str = "N/A"
    created_by_user_id: str | None = None
    created_by_user_name: str = "N/A"
    due_date: datetime | None = None
    related_lead_id: str | None = None
    related_company_id: str | None = None
    related_contact_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskFields(_Request):
    not_null = frozenset({"title", "status", "priority"})

    description: str | None = None
    assigned_to_user_id: UUID | None = None
    due_date: datetime | None = None
    related_lead_id: UUID | None = None
    related_company_id: UUID | None = None
    related_contact_id: UUID | None = None


class CreateTaskRequest(TaskFields):
    title: str = Field(min_length=1)
    status: TaskStatus = TaskStatus.TO_DO
    priority: Priority = Priority.MEDIUM
    org_id: UUID | None = None


class UpdateTaskRequest(TaskFields):
    title: str | None = Field(default=None, min_length=1)
    status: TaskStatus | None = None
    priority: Priority | None = None


class TaskCommentSchema(BaseModel):
    id: str
    org_id: str
    task_id: str
    user_id: str | None = None
    user_full_name: str = "User"
    comment: str
    created_at: datetime | None = None


class CreateTaskCommentRequest(BaseModel):
    comment: str = Field(min_length=1)


class TicketSchema(BaseModel):
    id: str
    org_id: str
    ticket_uid: str
    subject: str
    description: str = ""
    status: str
    priority: str
    requester_info: str | None = None
    assigned_to_user_id: str | None = None
    assigned_to_user_name: str = "Unassigned"
    created_by_user_id: str | None = None
    created_by_user_name: str = "N/A"
    related_lead_id: str | None = None
    related_company_id: str | None = None
    related_contact_id: str | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TicketFields(_Request):
    not_null = frozenset({"subject", "description", "status", "priority"})

    description: str | None = None
    requester_info: str | None = None
    assigned_to_user_id: UUID | None = None
    related_lead_id: UUID | None = None
    related_company_id: UUID | None = None
    related_contact_id: UUID | None = None


class CreateTicketRequest(TicketFields):
    subject: str = Field(min_length=1)
    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
    org_id: UUID | None = None


class UpdateTicketRequest(TicketFields):
    subject: str | None = Field(default=None, min_length=1)
    status: TicketStatus | None = None
    priority: Priority | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Lead history
# ---------------------------------------------------------------------------


class LeadActivitySchema(BaseModel):
    id: str
    org_id: str
    lead_id: str
    lead_name: str | None = None
    user_id: str | None = None
    user_full_name: str = "System"
    type: str
    details: str = ""
    created_at: datetime | None = None


class CreateLeadActivityRequest(_Request):
    type: str = Field(min_length=1)
    details: str = ""
    user_id: UUID | None = None


class LeadFollowUpSchema(BaseModel):
    id: str
    org_id: str
    lead_id: str
    lead_name: str | None = None
    user_id: str | None = None
    user_full_name: str = "N/A"
    due_date: datetime
    status: str
    notes: str | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateLeadFollowUpRequest(_Request):
    due_date: datetime
    status: FollowUpStatus = FollowUpStatus.PENDING
    notes: str | None = None
    user_id: UUID | None = None


class UpdateLeadFollowUpRequest(_Request):
    not_null = frozenset({"due_date", "status"})

    due_date: datetime | None = None
    status: FollowUpStatus | None = None
    notes: str | None = None
    user_id: UUID | None = None
    completed_at: datetime | None = None
