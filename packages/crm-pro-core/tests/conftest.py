"""Shared fixtures: in-memory identity provider and profile resolver."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from crm_pro.auth.identity import AuthChangeCallback, AuthEvent, AuthEventEmitter, Subscription
from crm_pro.errors import BackendError, CredentialError
from crm_pro.models import AuthUser, Role, Session, UserProfile

ORG_ID = "org-1"


def make_session(user: AuthUser, minutes: int = 60) -> Session:
    return Session(
        access_token=f"access-{user.id}",
        refresh_token=f"refresh-{user.id}",
        expires_at=datetime.now(UTC) + timedelta(minutes=minutes),
        user=user,
    )


def make_profile(auth_user: AuthUser, role: Role = Role.USER, org_id: str = ORG_ID) -> UserProfile:
    return UserProfile(
        id=f"profile-{auth_user.id}",
        auth_user_id=auth_user.id,
        email=auth_user.email,
        full_name=auth_user.email.split("@")[0].title(),
        role=role,
        org_id=org_id,
    )


class FakeIdentityProvider:
    """Password sign-in against a dict of accounts.

    With ``auto_emit`` off, sign-in/sign-out change the session silently and
    the test drives events through ``push``.
    """

    def __init__(self, accounts: dict[str, tuple[str, AuthUser]] | None = None, auto_emit: bool = True):
        self.accounts = accounts or {}
        self.auto_emit = auto_emit
        self.session: Session | None = None
        self.sign_out_calls = 0
        self.fail_get_session = False
        self.fail_sign_out = False
        self._events = AuthEventEmitter()

    @property
    def subscriber_count(self) -> int:
        return self._events.subscriber_count

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        return self._events.subscribe(callback)

    def push(self, event: AuthEvent, session: Session | None) -> None:
        self.session = session
        self._events.emit(event, session)

    async def get_session(self) -> Session | None:
        if self.fail_get_session:
            raise BackendError(503, "identity service unavailable")
        return self.session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise CredentialError("Invalid login credentials")
        self.session = make_session(account[1])
        if self.auto_emit:
            self._events.emit(AuthEvent.SIGNED_IN, self.session)
        return self.session

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.fail_sign_out:
            raise BackendError(500, "sign out failed")
        self.session = None
        if self.auto_emit:
            self._events.emit(AuthEvent.SIGNED_OUT, None)


class FakeProfileResolver:
    def __init__(self, profiles: dict[str, UserProfile] | None = None):
        self.profiles = profiles or {}
        self.calls: list[str] = []
        self.fail = False

    async def resolve(self, auth_user_id: str) -> UserProfile | None:
        self.calls.append(auth_user_id)
        if self.fail:
            raise BackendError(500, "profile lookup failed")
        return self.profiles.get(auth_user_id)


@pytest.fixture
def alice() -> AuthUser:
    return AuthUser(id="auth-alice", email="alice@acme.test")


@pytest.fixture
def bob() -> AuthUser:
    return AuthUser(id="auth-bob", email="bob@acme.test")


@pytest.fixture
def ghost() -> AuthUser:
    """An identity with no profile row."""
    return AuthUser(id="auth-ghost", email="ghost@acme.test")


@pytest.fixture
def admin_profile(alice) -> UserProfile:
    return make_profile(alice, Role.ADMIN)


@pytest.fixture
def user_profile(bob) -> UserProfile:
    return make_profile(bob, Role.USER)


@pytest.fixture
def provider(alice, bob, ghost) -> FakeIdentityProvider:
    return FakeIdentityProvider(
        accounts={
            alice.email: ("alice-pw", alice),
            bob.email: ("bob-pw", bob),
            ghost.email: ("ghost-pw", ghost),
        }
    )


@pytest.fixture
def profiles(admin_profile, user_profile) -> FakeProfileResolver:
    return FakeProfileResolver(
        {
            admin_profile.auth_user_id: admin_profile,
            user_profile.auth_user_id: user_profile,
        }
    )


@pytest.fixture
def new_session():
    return make_session


@pytest.fixture
def new_profile():
    return make_profile
