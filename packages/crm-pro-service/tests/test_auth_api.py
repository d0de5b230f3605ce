"""Auth endpoint tests: register, login, refresh rotation, logout, self-service update."""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime, timedelta

from crm_pro_service.auth.jwt import create_access_token

# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


def test_register_returns_session_and_creates_admin(client, signup):
    account = signup(email="Olivia@Acme.Test")

    assert account.session["token_type"] == "bearer"
    assert account.session["user"]["email"] == "olivia@acme.test"
    assert account.profile["role"] == "admin"
    assert account.profile["full_name"] == "Olivia Owner"
    assert account.profile["dashboard_widgets"]

    org = client.get(f"/api/v1/organizations/{account.org_id}", headers=account.headers)
    assert org.status_code == 200
    assert org.json()["name"] == "Acme"


def test_register_duplicate_email_returns_409(client, signup):
    signup(email="dup@acme.test")
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "org_name": "Other",
            "full_name": "Someone",
            "email": "DUP@acme.test",
            "password": "secret1",
        },
    )
    assert resp.status_code == 409
    assert "Email" in resp.json()["detail"]


def test_register_short_password_returns_422(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={"org_name": "X", "full_name": "X", "email": "x@x.test", "password": "12345"},
    )
    assert resp.status_code == 422


def test_register_blank_org_name_returns_422(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={"org_name": "  ", "full_name": "X", "email": "x@x.test", "password": "secret1"},
    )
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def test_login_returns_session(client, signup):
    signup(email="login@acme.test", password="mypassword")
    resp = client.post(
        "/api/v1/auth/login", json={"email": "login@acme.test", "password": "mypassword"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert datetime.fromisoformat(data["expires_at"]) > datetime.now(UTC)


def test_login_wrong_password_returns_401(client, signup):
    signup(email="fail@acme.test", password="correctpassword")
    resp = client.post(
        "/api/v1/auth/login", json={"email": "fail@acme.test", "password": "wrongpassword"}
    )
    assert resp.status_code == 401


def test_login_unknown_email_returns_401(client):
    resp = client.post(
        "/api/v1/auth/login", json={"email": "nobody@acme.test", "password": "anything"}
    )
    assert resp.status_code == 401


def test_identity_without_profile_can_sign_in_but_not_use_tenant_routes(client, world):
    asyncio.run(world.auth.create_auth_user("ghost@acme.test", "ghost-pw"))

    login = client.post("/api/v1/auth/login", json={"email": "ghost@acme.test", "password": "ghost-pw"})
    assert login.status_code == 200
    session = login.json()
    headers = {"Authorization": f"Bearer {session['access_token']}"}

    by_auth = client.get(f"/api/v1/users/by-auth/{session['user']['id']}", headers=headers)
    assert by_auth.status_code == 404
    assert by_auth.json()["detail"] == "User profile not found"

    leads = client.get("/api/v1/leads", headers=headers)
    assert leads.status_code == 403


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------


def test_session_returns_identity(client, admin):
    resp = client.get("/api/v1/auth/session", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json() == admin.session["user"]


def test_missing_token_returns_401(client):
    assert client.get("/api/v1/auth/session").status_code == 401
    assert client.get("/api/v1/leads").status_code == 401


def test_garbage_token_returns_401(client):
    resp = client.get("/api/v1/leads", headers={"Authorization": "Bearer not.a.token"})
    assert resp.status_code == 401


def test_token_for_unknown_session_returns_401(client, admin):
    token = create_access_token(
        uuid.UUID(admin.session["user"]["id"]), uuid.uuid4(), "olivia@acme.test"
    )
    resp = client.get("/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_expired_access_token_returns_401(client, admin, world):
    session_id = next(iter(world.auth.sessions))
    token = create_access_token(
        uuid.UUID(admin.session["user"]["id"]),
        session_id,
        "olivia@acme.test",
        expires_at=datetime.now(UTC) - timedelta(minutes=1),
    )
    resp = client.get("/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Refresh / logout
# ---------------------------------------------------------------------------


def test_refresh_rotates_tokens(client, admin):
    resp = client.post(
        "/api/v1/auth/refresh", json={"refresh_token": admin.session["refresh_token"]}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["refresh_token"] != admin.session["refresh_token"]
    assert data["user"] == admin.session["user"]

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    assert client.get("/api/v1/auth/session", headers=headers).status_code == 200


def test_reused_refresh_token_revokes_session(client, admin):
    first = admin.session["refresh_token"]
    rotated = client.post("/api/v1/auth/refresh", json={"refresh_token": first}).json()

    replay = client.post("/api/v1/auth/refresh", json={"refresh_token": first})
    assert replay.status_code == 401

    after = client.post("/api/v1/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert after.status_code == 401
    assert client.get("/api/v1/auth/session", headers=admin.headers).status_code == 401


def test_refresh_with_access_token_returns_401(client, admin):
    resp = client.post("/api/v1/auth/refresh", json={"refresh_token": admin.session["access_token"]})
    assert resp.status_code == 401


def test_logout_revokes_session(client, admin):
    assert client.post("/api/v1/auth/logout", headers=admin.headers).status_code == 204
    assert client.get("/api/v1/auth/session", headers=admin.headers).status_code == 401

    refresh = client.post(
        "/api/v1/auth/refresh", json={"refresh_token": admin.session["refresh_token"]}
    )
    assert refresh.status_code == 401


# ---------------------------------------------------------------------------
# Self-service update
# ---------------------------------------------------------------------------


def test_update_full_name_updates_profile(client, admin):
    resp = client.patch(
        "/api/v1/auth/user", json={"full_name": "Olivia Renamed"}, headers=admin.headers
    )
    assert resp.status_code == 200
    assert resp.json()["email"] == "olivia@acme.test"

    profile = client.get(
        f"/api/v1/users/by-auth/{admin.session['user']['id']}", headers=admin.headers
    )
    assert profile.json()["full_name"] == "Olivia Renamed"


def test_update_password_changes_login(client, admin):
    resp = client.patch("/api/v1/auth/user", json={"password": "brand-new"}, headers=admin.headers)
    assert resp.status_code == 200

    old = client.post("/api/v1/auth/login", json={"email": "olivia@acme.test", "password": "secret1"})
    new = client.post(
        "/api/v1/auth/login", json={"email": "olivia@acme.test", "password": "brand-new"}
    )
    assert old.status_code == 401
    assert new.status_code == 200


def test_update_short_password_returns_422(client, admin):
    resp = client.patch("/api/v1/auth/user", json={"password": "123"}, headers=admin.headers)
    assert resp.status_code == 422
