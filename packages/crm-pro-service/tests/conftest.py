"""Service test fixtures with in-memory mock repos.

Requests go through the real JWT and profile dependencies; only the
database session and the repositories are replaced.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crm_pro_service.auth.passwords import hash_password
from crm_pro_service.db.deps import (
    get_auth_repo,
    get_companies_repo,
    get_contacts_repo,
    get_deals_repo,
    get_lead_activities_repo,
    get_lead_follow_ups_repo,
    get_leads_repo,
    get_products_repo,
    get_session,
    get_task_comments_repo,
    get_tasks_repo,
    get_tickets_repo,
    get_users_repo,
)
from crm_pro_service.db.models import DEFAULT_DASHBOARD_WIDGETS
from crm_pro_service.db.repositories.crm import new_ticket_uid
from crm_pro_service.rest.app import include_routers

# Column defaults per table, mirroring the ORM models.
DEFAULTS: dict[str, dict[str, Any]] = {
    "companies": dict.fromkeys(
        [
            "industry",
            "website",
            "phone_office",
            "address_street",
            "address_city",
            "address_state",
            "address_postal_code",
            "address_country",
        ]
    ),
    "contacts": {
        "company_id": None,
        "last_name": "",
        "email_primary": None,
        "phone_work": None,
        "phone_mobile": None,
        "designation": None,
    },
    "leads": {
        "mobile": "",
        "source": "",
        "status": "New",
        "stage": None,
        "owner_user_id": None,
        "company_id": None,
        "contact_id": None,
        "notes": None,
    },
    "products": {"description": None, "price": 0},
    "deals": {
        "lead_id": None,
        "status": "Draft",
        "total_value": 0,
        "created_by_user_id": None,
        "company_id": None,
        "contact_id": None,
    },
    "tasks": {
        "description": None,
        "status": "To Do",
        "priority": "Medium",
        "assigned_to_user_id": None,
        "created_by_user_id": None,
        "due_date": None,
        "related_lead_id": None,
        "related_company_id": None,
        "related_contact_id": None,
    },
    "tickets": {
        "description": "",
        "status": "Open",
        "priority": "Medium",
        "requester_info": None,
        "assigned_to_user_id": None,
        "created_by_user_id": None,
        "related_lead_id": None,
        "related_company_id": None,
        "related_contact_id": None,
        "resolved_at": None,
        "closed_at": None,
    },
    "task_comments": {"user_id": None},
    "lead_activities": {"user_id": None, "details": ""},
    "lead_follow_ups": {
        "user_id": None,
        "status": "pending",
        "notes": None,
        "completed_at": None,
    },
}

# relationship attribute -> (foreign key column, target table)
RELATIONS: dict[str, dict[str, tuple[str, str]]] = {
    "users": {"manager": ("parent_user_id", "users")},
    "contacts": {"company": ("company_id", "companies")},
    "leads": {
        "owner": ("owner_user_id", "users"),
        "company": ("company_id", "companies"),
        "contact": ("contact_id", "contacts"),
    },
    "deals": {
        "lead": ("lead_id", "leads"),
        "company": ("company_id", "companies"),
        "contact": ("contact_id", "contacts"),
        "created_by": ("created_by_user_id", "users"),
    },
    "tasks": {
        "assigned_to": ("assigned_to_user_id", "users"),
        "created_by": ("created_by_user_id", "users"),
    },
    "tickets": {
        "assigned_to": ("assigned_to_user_id", "users"),
        "created_by": ("created_by_user_id", "users"),
    },
    "task_comments": {"user": ("user_id", "users")},
    "lead_activities": {"lead": ("lead_id", "leads"), "user": ("user_id", "users")},
    "lead_follow_ups": {"lead": ("lead_id", "leads"), "user": ("user_id", "users")},
}


def _row(**fields: Any) -> MagicMock:
    row = MagicMock()
    now = datetime.now(UTC)
    row.id = fields.pop("id", uuid.uuid4())
    row.created_at = now
    row.updated_at = now
    for key, value in fields.items():
        setattr(row, key, value)
    return row


class World:
    """All in-memory tables for one test."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[uuid.UUID, Any]] = {
            name: {} for name in ("users", *DEFAULTS)
        }
        self.db_session = AsyncMock()
        self.auth = InMemoryAuthRepo()
        self.users = InMemoryUsersRepo(self)
        self.leads = InMemoryLeadsRepo(self, "leads")
        self.companies = InMemoryCompaniesRepo(self, "companies")
        self.contacts = InMemoryContactsRepo(self, "contacts")
        self.deals = InMemoryDealsRepo(self, "deals")
        self.tasks = InMemoryTenantRepo(self, "tasks")
        self.tickets = InMemoryTicketsRepo(self, "tickets")
        self.products = InMemoryProductsRepo(self, "products")
        self.task_comments = InMemoryTaskCommentsRepo(self, "task_comments")
        self.lead_activities = InMemoryLeadActivitiesRepo(self, "lead_activities")
        self.lead_follow_ups = InMemoryLeadFollowUpsRepo(self, "lead_follow_ups")

    def relink(self, table: str, row: Any) -> Any:
        for attr, (column, target) in RELATIONS.get(table, {}).items():
            setattr(row, attr, self.tables[target].get(getattr(row, column)))
        return row

    def relink_all(self) -> None:
        for table, rows in self.tables.items():
            for row in rows.values():
                self.relink(table, row)


class InMemoryAuthRepo:
    """In-memory identities, organizations and login sessions."""

    def __init__(self) -> None:
        self.orgs: dict[uuid.UUID, Any] = {}
        self.auth_users: dict[uuid.UUID, Any] = {}
        self.sessions: dict[uuid.UUID, Any] = {}
        self.commits = 0

    async def create_org(self, name: str):
        org = _row(name=name)
        self.orgs[org.id] = org
        return org

    async def get_org(self, org_id):
        return self.orgs.get(org_id)

    async def create_auth_user(self, email: str, password: str, full_name: str | None = None):
        user = _row(email=email.lower(), password_hash=hash_password(password), full_name=full_name)
        self.auth_users[user.id] = user
        return user

    async def get_auth_user(self, auth_user_id):
        return self.auth_users.get(auth_user_id)

    async def get_auth_user_by_email(self, email: str):
        return next((u for u in self.auth_users.values() if u.email == email.lower()), None)

    async def update_auth_user(self, user, password=None, full_name=None):
        if password:
            user.password_hash = hash_password(password)
        if full_name is not None:
            user.full_name = full_name
        return user

    async def create_session(self, auth_user_id, refresh_jti, expires_at):
        row = _row(
            auth_user_id=auth_user_id,
            refresh_jti=refresh_jti,
            expires_at=expires_at,
            revoked_at=None,
        )
        self.sessions[row.id] = row
        return row

    async def get_session(self, session_id):
        return self.sessions.get(session_id)

    async def rotate_session(self, row, refresh_jti, expires_at):
        row.refresh_jti = refresh_jti
        row.expires_at = expires_at
        return row

    async def revoke_session(self, row) -> None:
        row.revoked_at = datetime.now(UTC)

    async def commit(self) -> None:
        self.commits += 1


class InMemoryUsersRepo:
    def __init__(self, world: World) -> None:
        self._world = world
        self._rows = world.tables["users"]

    async def get_by_auth_user(self, auth_user_id):
        return next((u for u in self._rows.values() if u.auth_user_id == auth_user_id), None)

    async def get(self, user_id, org_id):
        user = self._rows.get(user_id)
        return user if user is not None and user.org_id == org_id else None

    async def list(self, org_id):
        users = [u for u in self._rows.values() if u.org_id == org_id]
        return sorted(users, key=lambda u: u.full_name)

    async def count_reports(self, org_id):
        counts: dict[uuid.UUID, int] = {}
        for user in self._rows.values():
            if user.org_id == org_id and user.parent_user_id is not None:
                counts[user.parent_user_id] = counts.get(user.parent_user_id, 0) + 1
        return counts

    async def create(
        self,
        org_id,
        auth_user_id,
        email: str,
        full_name: str,
        role: str,
        role_name=None,
        parent_user_id=None,
    ):
        user = _row(
            org_id=org_id,
            auth_user_id=auth_user_id,
            email=email.lower(),
            full_name=full_name,
            role=role,
            role_name=role_name,
            parent_user_id=parent_user_id,
            dashboard_widgets=list(DEFAULT_DASHBOARD_WIDGETS),
        )
        self._rows[user.id] = user
        return self._world.relink("users", user)

    async def update(self, user, **values):
        for key, value in values.items():
            setattr(user, key, value)
        self._world.relink_all()
        return user

    async def delete(self, user) -> None:
        self._rows.pop(user.id, None)
        self._world.relink_all()

    async def commit(self) -> None:
        pass


class InMemoryTenantRepo:
    """Generic org-filtered table, shaped like ``TenantRepo``."""

    def __init__(self, world: World, table: str) -> None:
        self._world = world
        self._table = table
        self._rows = world.tables[table]

    async def list(self, org_id, **filters):
        rows = [r for r in self._rows.values() if r.org_id == org_id]
        for column, value in filters.items():
            if value is not None:
                rows = [r for r in rows if getattr(r, column) == value]
        return rows

    async def list_visible(self, org_id, user_id=None, **filters):
        rows = await self.list(org_id, **filters)
        if user_id is not None:
            rows = [
                r for r in rows if user_id in (r.assigned_to_user_id, r.created_by_user_id)
            ]
        return rows

    async def get(self, id, org_id):
        row = self._rows.get(id)
        return row if row is not None and row.org_id == org_id else None

    async def create(self, org_id, **values):
        row = _row(org_id=org_id, **{**DEFAULTS[self._table], **values})
        self._rows[row.id] = row
        return self._world.relink(self._table, row)

    async def update(self, row, **values):
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_at = datetime.now(UTC)
        return self._world.relink(self._table, row)

    async def delete(self, row) -> None:
        self._rows.pop(row.id, None)
        self._world.relink_all()

    def _unlink(self, column: str, row, *tables: str) -> None:
        for table in tables:
            for linked in self._world.tables[table].values():
                if getattr(linked, column) == row.id:
                    setattr(linked, column, None)


class InMemoryCompaniesRepo(InMemoryTenantRepo):
    async def delete(self, row) -> None:
        self._unlink("company_id", row, "contacts", "leads", "deals")
        await super().delete(row)


class InMemoryContactsRepo(InMemoryTenantRepo):
    async def delete(self, row) -> None:
        self._unlink("contact_id", row, "leads", "deals")
        await super().delete(row)


class InMemoryLeadsRepo(InMemoryTenantRepo):
    async def bulk_create(self, org_id, rows):
        companies = {
            c.name.lower(): c.id
            for c in self._world.tables["companies"].values()
            if c.org_id == org_id
        }
        contacts = {
            f"{c.first_name} {c.last_name}".strip().lower(): c.id
            for c in self._world.tables["contacts"].values()
            if c.org_id == org_id
        }
        created = []
        for row in rows:
            values = dict(row)
            company_name = values.pop("company_name", None)
            contact_name = values.pop("contact_name", None)
            if company_name and not values.get("company_id"):
                values["company_id"] = companies.get(company_name.lower())
            if contact_name and not values.get("contact_id"):
                values["contact_id"] = contacts.get(contact_name.lower())
            created.append(await self.create(org_id, **values))
        return created

    async def bulk_update(self, org_id, lead_ids, values):
        if not lead_ids or not values:
            return 0
        updated = 0
        for lead_id in lead_ids:
            lead = await self.get(lead_id, org_id)
            if lead is not None:
                await self.update(lead, **values)
                updated += 1
        return updated

    async def delete(self, row) -> None:
        for table in ("deals", "lead_activities", "lead_follow_ups"):
            owned = self._world.tables[table]
            for owned_id in [r.id for r in owned.values() if r.lead_id == row.id]:
                owned.pop(owned_id)
        await super().delete(row)


def _items(items):
    return [
        _row(
            product_id=item.get("product_id"),
            product_name=item["product_name"],
            quantity=item.get("quantity", 1),
            unit_price=item.get("unit_price", 0),
            total_price=item.get("quantity", 1) * item.get("unit_price", 0),
        )
        for item in items
    ]


class InMemoryDealsRepo(InMemoryTenantRepo):
    async def create(self, org_id, items=None, **values):
        deal_items = _items(items or [])
        if deal_items:
            values["total_value"] = sum(i.total_price for i in deal_items)
        return await super().create(org_id, items=deal_items, **values)

    async def update(self, row, items=None, **values):
        if items is not None:
            row.items = _items(items)
            values["total_value"] = sum(i.total_price for i in row.items)
        return await super().update(row, **values)


class InMemoryTicketsRepo(InMemoryTenantRepo):
    async def create(self, org_id, **values):
        values.setdefault("ticket_uid", new_ticket_uid())
        return await super().create(org_id, **values)


class InMemoryProductsRepo(InMemoryTenantRepo):
    async def list(self, org_id, **filters):
        return sorted(await super().list(org_id, **filters), key=lambda p: p.name)

    async def bulk_create(self, org_id, rows):
        return [await self.create(org_id, **row) for row in rows]

    async def delete(self, row) -> None:
        for deal in self._world.tables["deals"].values():
            for item in deal.items:
                if item.product_id == row.id:
                    item.product_id = None
        await super().delete(row)


class InMemoryTaskCommentsRepo(InMemoryTenantRepo):
    async def list(self, org_id, **filters):
        return sorted(await super().list(org_id, **filters), key=lambda c: c.created_at)


class InMemoryLeadActivitiesRepo(InMemoryTenantRepo):
    async def list(self, org_id, **filters):
        rows = await super().list(org_id, **filters)
        return sorted(rows, key=lambda a: a.created_at, reverse=True)

    async def recent(self, org_id, limit=5):
        return (await self.list(org_id))[:limit]


class InMemoryLeadFollowUpsRepo(InMemoryTenantRepo):
    async def list(self, org_id, **filters):
        return sorted(await super().list(org_id, **filters), key=lambda f: f.due_date)

    async def upcoming_for_user(self, org_id, user_id, limit=5):
        rows = await self.list(org_id, user_id=user_id, status="pending")
        return rows[:limit]


@dataclass
class Account:
    """A signed-in caller: its session JSON, bearer headers and profile JSON."""

    session: dict
    headers: dict
    profile: dict

    @property
    def id(self) -> str:
        return self.profile["id"]

    @property
    def org_id(self) -> str:
        return self.profile["org_id"]


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def app(world: World) -> FastAPI:
    """Create a test app with in-memory repos (no database needed)."""
    app = include_routers(FastAPI(title="CRM Pro API (test)"))

    app.dependency_overrides[get_session] = lambda: world.db_session
    app.dependency_overrides[get_auth_repo] = lambda: world.auth
    app.dependency_overrides[get_users_repo] = lambda: world.users
    app.dependency_overrides[get_leads_repo] = lambda: world.leads
    app.dependency_overrides[get_companies_repo] = lambda: world.companies
    app.dependency_overrides[get_contacts_repo] = lambda: world.contacts
    app.dependency_overrides[get_deals_repo] = lambda: world.deals
    app.dependency_overrides[get_tasks_repo] = lambda: world.tasks
    app.dependency_overrides[get_tickets_repo] = lambda: world.tickets
    app.dependency_overrides[get_products_repo] = lambda: world.products
    app.dependency_overrides[get_task_comments_repo] = lambda: world.task_comments
    app.dependency_overrides[get_lead_activities_repo] = lambda: world.lead_activities
    app.dependency_overrides[get_lead_follow_ups_repo] = lambda: world.lead_follow_ups
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def _bearer(session: dict) -> dict:
    return {"Authorization": f"Bearer {session['access_token']}"}


@pytest.fixture
def signup(client: TestClient):
    """Register an organization and return its admin as an ``Account``."""

    def _signup(
        email: str = "olivia@acme.test",
        org_name: str = "Acme",
        full_name: str = "Olivia Owner",
        password: str = "secret1",
    ) -> Account:
        resp = client.post(
            "/api/v1/auth/register",
            json={
                "org_name": org_name,
                "full_name": full_name,
                "email": email,
                "password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        session = resp.json()
        headers = _bearer(session)
        profile = client.get(f"/api/v1/users/by-auth/{session['user']['id']}", headers=headers)
        assert profile.status_code == 200, profile.text
        return Account(session, headers, profile.json())

    return _signup


@pytest.fixture
def add_member(client: TestClient):
    """Create a user in ``admin``'s organization and sign in as them."""

    def _add_member(
        admin: Account,
        email: str,
        full_name: str = "Uma User",
        role: str = "user",
        password: str = "secret1",
        parent_user_id: str | None = None,
    ) -> Account:
        resp = client.post(
            "/api/v1/users",
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "role": role,
                "parent_user_id": parent_user_id,
                "org_id": admin.org_id,
            },
            headers=admin.headers,
        )
        assert resp.status_code == 201, resp.text
        login = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        session = login.json()
        return Account(session, _bearer(session), resp.json())

    return _add_member


@pytest.fixture
def admin(signup) -> Account:
    return signup()


@pytest.fixture
def member(admin: Account, add_member) -> Account:
    return add_member(admin, "uma@acme.test")
