"""Domain records exchanged with the tenant backend."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from crm_pro.config import DEFAULT_DASHBOARD_WIDGETS


class Role(str, Enum):
    """System-level role stored on the profile row."""
    ADMIN = "admin"
    USER = "user"


class LeadStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    CONVERTED = "Converted"
    LOST = "Lost"


class DealStatus(str, Enum):
    DRAFT = "Draft"
    PRESENTED = "Presented"
    NEGOTIATION = "Negotiation"
    WON = "Won"
    LOST = "Lost"
    CANCELLED = "Cancelled"


class TaskStatus(str, Enum):
    TO_DO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    BLOCKED = "Blocked"
    CANCELLED = "Cancelled"


class TicketStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class AuthUser(BaseModel):
    """Provider-side identity record."""
    id: str
    email: str


class Session(BaseModel):
    """Provider-issued proof of authentication with a wall-clock expiry."""

    access_token: str
    refresh_token: str
    expires_at: datetime
    user: AuthUser
    token_type: str = "bearer"

    def expires_within(self, seconds: float, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at - timedelta(seconds=seconds) <= now


class Organization(BaseModel):
    id: str
    name: str
    created_at: datetime | None = None


class UserProfile(BaseModel):
    """Tenant-scoped application user (the ``users`` table)."""

    id: str
    auth_user_id: str
    email: str
    full_name: str
    role: Role
    org_id: str
    parent_user_id: str | None = None
    role_name: str | None = None
    manager_name: str | None = None
    manages_users_count: int = 0
    dashboard_widgets: list[str] = Field(default_factory=lambda: list(DEFAULT_DASHBOARD_WIDGETS))
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# CRM entities
# ---------------------------------------------------------------------------


class Company(BaseModel):
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


class Contact(BaseModel):
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

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Lead(BaseModel):
    id: str
    org_id: str
    name: str
    email: str
    mobile: str = ""
    source: str = ""
    status: LeadStatus = LeadStatus.NEW
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


class Product(BaseModel):
    id: str
    org_id: str
    name: str
    description: str | None = None
    price: float = Field(default=0, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DealItem(BaseModel):
    id: str | None = None
    product_id: str | None = None
    product_name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0, ge=0)
    total_price: float = 0


class Deal(BaseModel):
    id: str
    org_id: str
    deal_name: str
    status: DealStatus = DealStatus.DRAFT
    total_value: float = 0
    lead_id: str | None = None
    lead_name: str | None = None
    company_id: str | None = None
    company_name: str | None = None
    contact_id: str | None = None
    contact_name: str | None = None
    created_by_user_id: str | None = None
    created_by_user_name: str | None = None
    items: list[DealItem] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Task(BaseModel):
    id: str
    org_id: str
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.TO_DO
    priority: Priority = Priority.MEDIUM
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


class Ticket(BaseModel):
    id: str
    org_id: str
    ticket_uid: str
    subject: str
    description: str = ""
    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
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


class TaskComment(BaseModel):
    id: str
    org_id: str
    task_id: str
    user_id: str | None = None
    user_full_name: str = "User"
    comment: str
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Lead history
# ---------------------------------------------------------------------------


class LeadActivity(BaseModel):
    """Something that happened on a lead: a call, an email, a status change."""

    id: str
    org_id: str
    lead_id: str
    lead_name: str | None = None
    user_id: str | None = None
    user_full_name: str = "System"
    type: str
    details: str = ""
    created_at: datetime | None = None


class LeadFollowUp(BaseModel):
    id: str
    org_id: str
    lead_id: str
    lead_name: str | None = None
    user_id: str | None = None
    user_full_name: str = "N/A"
    due_date: datetime
    status: FollowUpStatus = FollowUpStatus.PENDING
    notes: str | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
