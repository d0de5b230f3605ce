"""Lead endpoint tests, including bulk insert and bulk update."""

from __future__ import annotations


def _create_lead(client, account, **fields):
    body = {"name": "Ada Lovelace", "email": "ada@example.com", **fields}
    resp = client.post("/api/v1/leads", json=body, headers=account.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_lead_defaults(client, admin):
    lead = _create_lead(client, admin, org_id=admin.org_id)

    assert lead["org_id"] == admin.org_id
    assert lead["status"] == "New"
    assert lead["owner_name"] == "Unassigned"
    assert lead["company_name"] is None


def test_create_lead_with_owner_company_and_contact(client, admin, member):
    company = client.post(
        "/api/v1/companies", json={"name": "Analytical Engines"}, headers=admin.headers
    ).json()
    contact = client.post(
        "/api/v1/contacts",
        json={"first_name": "Charles", "last_name": "Babbage", "company_id": company["id"]},
        headers=admin.headers,
    ).json()

    lead = _create_lead(
        client,
        admin,
        owner_user_id=member.id,
        company_id=company["id"],
        contact_id=contact["id"],
        status="Contacted",
    )

    assert lead["owner_name"] == "Uma User"
    assert lead["company_name"] == "Analytical Engines"
    assert lead["contact_name"] == "Charles Babbage"
    assert lead["status"] == "Contacted"


def test_create_lead_invalid_status_returns_422(client, admin):
    resp = client.post(
        "/api/v1/leads",
        json={"name": "X", "email": "x@example.com", "status": "Hot"},
        headers=admin.headers,
    )
    assert resp.status_code == 422


def test_create_lead_requires_name_and_email(client, admin):
    resp = client.post("/api/v1/leads", json={"name": "No Email"}, headers=admin.headers)
    assert resp.status_code == 422


def test_list_leads_filters_by_status(client, admin):
    _create_lead(client, admin, name="One")
    _create_lead(client, admin, name="Two", status="Qualified")

    resp = client.get("/api/v1/leads", params={"status": "Qualified"}, headers=admin.headers)
    assert [lead["name"] for lead in resp.json()] == ["Two"]


def test_get_update_delete_lead(client, admin):
    lead = _create_lead(client, admin)

    got = client.get(f"/api/v1/leads/{lead['id']}", headers=admin.headers)
    assert got.status_code == 200
    assert got.json()["email"] == "ada@example.com"

    updated = client.patch(
        f"/api/v1/leads/{lead['id']}",
        json={"status": "Qualified", "notes": "Call back Monday"},
        headers=admin.headers,
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "Qualified"
    assert updated.json()["notes"] == "Call back Monday"

    assert client.delete(f"/api/v1/leads/{lead['id']}", headers=admin.headers).status_code == 204
    assert client.get(f"/api/v1/leads/{lead['id']}", headers=admin.headers).status_code == 404


def test_update_lead_clears_owner(client, admin, member):
    lead = _create_lead(client, admin, owner_user_id=member.id)
    resp = client.patch(
        f"/api/v1/leads/{lead['id']}", json={"owner_user_id": None}, headers=admin.headers
    )
    assert resp.json()["owner_user_id"] is None
    assert resp.json()["owner_name"] == "Unassigned"


def test_update_lead_ignores_null_for_required_columns(client, admin):
    lead = _create_lead(client, admin, mobile="555-0100")
    resp = client.patch(
        f"/api/v1/leads/{lead['id']}", json={"mobile": None, "stage": None}, headers=admin.headers
    )
    assert resp.status_code == 200
    assert resp.json()["mobile"] == "555-0100"


def test_delete_lead_removes_its_deals_activities_and_follow_ups(client, admin, world):
    lead = _create_lead(client, admin)
    deal = client.post(
        "/api/v1/deals",
        json={"deal_name": "Engine", "lead_id": lead["id"]},
        headers=admin.headers,
    ).json()
    client.post(
        f"/api/v1/leads/{lead['id']}/activities",
        json={"type": "call", "details": "Intro call"},
        headers=admin.headers,
    )
    follow_up = client.post(
        f"/api/v1/leads/{lead['id']}/follow-ups",
        json={"due_date": "2026-11-02T09:00:00Z"},
        headers=admin.headers,
    ).json()

    client.delete(f"/api/v1/leads/{lead['id']}", headers=admin.headers)
    assert client.get(f"/api/v1/deals/{deal['id']}", headers=admin.headers).status_code == 404
    assert world.tables["lead_activities"] == {}
    assert world.tables["lead_follow_ups"] == {}
    resp = client.patch(
        f"/api/v1/follow-ups/{follow_up['id']}", json={"notes": "x"}, headers=admin.headers
    )
    assert resp.status_code == 404


def test_unknown_lead_id_returns_404(client, admin):
    assert client.get("/api/v1/leads/not-a-uuid", headers=admin.headers).status_code == 404


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


def test_bulk_create_resolves_company_and_contact_names(client, admin):
    client.post("/api/v1/companies", json={"name": "Globex"}, headers=admin.headers)
    client.post(
        "/api/v1/contacts",
        json={"first_name": "Hank", "last_name": "Scorpio"},
        headers=admin.headers,
    )

    resp = client.post(
        "/api/v1/leads/bulk",
        json={
            "org_id": admin.org_id,
            "leads": [
                {
                    "name": "Homer",
                    "email": "homer@example.com",
                    "company_name": "globex",
                    "contact_name": "Hank Scorpio",
                },
                {"name": "Marge", "email": "marge@example.com", "company_name": "Unknown Co"},
            ],
        },
        headers=admin.headers,
    )

    assert resp.status_code == 201
    leads = {lead["name"]: lead for lead in resp.json()}
    assert leads["Homer"]["company_name"] == "Globex"
    assert leads["Homer"]["contact_name"] == "Hank Scorpio"
    assert leads["Marge"]["company_id"] is None
    assert leads["Marge"]["status"] == "New"


def test_bulk_create_for_other_org_returns_403(client, admin, signup):
    other = signup(email="boss@globex.test", org_name="Globex")
    resp = client.post(
        "/api/v1/leads/bulk",
        json={"org_id": other.org_id, "leads": [{"name": "X", "email": "x@example.com"}]},
        headers=admin.headers,
    )
    assert resp.status_code == 403


def test_bulk_update_assigns_owner_and_status(client, admin, member):
    first = _create_lead(client, admin, name="First")
    second = _create_lead(client, admin, name="Second")
    untouched = _create_lead(client, admin, name="Third")

    resp = client.patch(
        "/api/v1/leads/bulk",
        json={
            "org_id": admin.org_id,
            "lead_ids": [first["id"], second["id"]],
            "updates": {"owner_user_id": member.id, "status": "Contacted"},
        },
        headers=admin.headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"updated": 2}

    leads = {lead["name"]: lead for lead in client.get("/api/v1/leads", headers=admin.headers).json()}
    assert leads["First"]["owner_name"] == "Uma User"
    assert leads["Second"]["status"] == "Contacted"
    assert leads[untouched["name"]]["status"] == "New"


def test_bulk_update_with_no_updates_changes_nothing(client, admin):
    lead = _create_lead(client, admin)
    resp = client.patch(
        "/api/v1/leads/bulk",
        json={"lead_ids": [lead["id"]], "updates": {}},
        headers=admin.headers,
    )
    assert resp.json() == {"updated": 0}
