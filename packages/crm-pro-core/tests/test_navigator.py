"""Navigator: redirects through the layout and route guards."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from crm_pro.auth.state import SIGNED_OUT, AuthContext, AuthPhase, AuthStateMachine, Credentials
from crm_pro.config import CrmConfig
from crm_pro.errors import NavigationError
from crm_pro.routing.guard import DenialReason, Location, RouteGuard
from crm_pro.routing.navigator import Navigator
from crm_pro.routing.routes import Route, RouteTable, navigation_items


def _ready(session, profile) -> SimpleNamespace:
    return SimpleNamespace(
        context=AuthContext(
            session=session,
            auth_user=session.user,
            profile=profile,
            is_loading=False,
            phase=AuthPhase.PROFILE_READY,
        )
    )


def test_signed_out_leads_lands_on_login():
    nav = Navigator(SimpleNamespace(context=SIGNED_OUT))
    result = nav.navigate("/leads")
    assert result.rendered
    assert result.location.path == "/login"
    assert result.location.state["from"].path == "/leads"
    assert [r.reason for r in result.redirects] == [DenialReason.UNAUTHENTICATED]
    assert nav.current.path == "/login"


def test_user_on_admin_route_lands_on_home(bob, user_profile, new_session):
    nav = Navigator(_ready(new_session(bob), user_profile))
    for path in ("/users", "/reports", "/products"):
        result = nav.navigate(path)
        assert result.location.path == "/"
        assert result.redirects[0].reason is DenialReason.FORBIDDEN


def test_admin_reaches_admin_routes(alice, admin_profile, new_session):
    nav = Navigator(_ready(new_session(alice), admin_profile))
    assert nav.navigate("/users").location.path == "/users"
    assert nav.navigate("/reports/").location.path == "/reports/"
    assert nav.navigate("/products").location.path == "/products"
    assert [loc.path for loc in nav.history] == ["/users", "/reports/", "/products"]


def test_unknown_route_falls_back_home(bob, user_profile, new_session):
    nav = Navigator(_ready(new_session(bob), user_profile))
    result = nav.navigate("/does-not-exist")
    assert result.location.path == "/"
    assert result.redirects[0].reason is DenialReason.UNKNOWN_ROUTE


def test_unknown_route_signed_out_goes_to_login():
    nav = Navigator(SimpleNamespace(context=SIGNED_OUT))
    result = nav.navigate("/nowhere")
    assert result.location.path == "/login"
    assert result.location.state["from"].path == "/nowhere"


def test_public_routes_render_while_loading():
    nav = Navigator(SimpleNamespace(context=AuthContext()))
    assert nav.navigate("/login").rendered
    assert nav.navigate("/register-organization").rendered


def test_protected_route_waits_while_loading():
    nav = Navigator(SimpleNamespace(context=AuthContext()))
    result = nav.navigate("/leads")
    assert result.waiting
    assert result.redirects == []
    assert nav.history == []


def test_redirect_loop_is_bounded():
    routes = RouteTable(
        (Route("/login", "Login", frozenset({"nobody"})),),
        fallback="/login",
    )
    nav = Navigator(SimpleNamespace(context=SIGNED_OUT), routes=routes, max_redirects=3)
    with pytest.raises(NavigationError):
        nav.navigate("/login")


@pytest.mark.asyncio
async def test_return_to_after_login(provider, profiles, alice):
    async with AuthStateMachine(provider, profiles) as machine:
        await machine.wait_until_settled()
        nav = Navigator.from_config(machine, CrmConfig())

        assert nav.navigate("/users").location.path == "/login"
        await machine.login(Credentials(alice.email, "alice-pw"))

        result = nav.return_to_after_login()
        assert result.location.path == "/users"


def test_return_to_after_login_defaults_home(alice, admin_profile, new_session):
    nav = Navigator(_ready(new_session(alice), admin_profile))
    nav.navigate("/login")
    assert nav.return_to_after_login().location.path == "/"


def test_navigation_items_filter_by_role(alice, bob, admin_profile, user_profile):
    admin_items = [i.href for i in navigation_items(admin_profile, "/")]
    user_items = [i.href for i in navigation_items(user_profile, "/")]
    assert "/users" in admin_items and "/reports" in admin_items and "/products" in admin_items
    assert "/users" not in user_items and "/reports" not in user_items
    assert "/products" not in user_items
    assert admin_items.index("/products") == admin_items.index("/support") + 1
    assert "/leads" in user_items
    assert navigation_items(None) == []


def test_navigation_current_uses_prefix_except_root(user_profile):
    items = {i.href: i.current for i in navigation_items(user_profile, "/leads/42")}
    assert items["/leads"] is True
    assert items["/"] is False

    items = {i.href: i.current for i in navigation_items(user_profile, "/")}
    assert items["/"] is True
    assert items["/leads"] is False


def test_guard_paths_follow_config(bob, user_profile, new_session):
    config = CrmConfig(default_path="/settings")
    nav = Navigator(
        _ready(new_session(bob), user_profile),
        guard=RouteGuard.from_config(config),
    )
    assert nav.navigate("/users").location.path == "/settings"
    assert nav.navigate("/").location == Location("/")


def test_every_sidebar_entry_is_a_route(alice, admin_profile, new_session):
    nav = Navigator(_ready(new_session(alice), admin_profile))
    for item in navigation_items(admin_profile, "/"):
        assert nav.navigate(item.href).location.path == item.href
