"""Identity provider backed by the tenant backend's ``/api/v1/auth`` endpoints."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from crm_pro.auth.identity import AuthChangeCallback, AuthEvent, AuthEventEmitter, Subscription
from crm_pro.client.http import BackendClient
from crm_pro.errors import BackendError, CredentialError
from crm_pro.models import AuthUser, Session

log = structlog.get_logger(__name__)

_CREDENTIAL_STATUSES = {400, 401, 422}


class HttpIdentityProvider:
    """Holds the session in memory and pushes every change to subscribers.

    The session is refreshed from its refresh token when it is within
    ``refresh_margin_s`` of expiry. A failed refresh ends the session.
    Concurrent callers share a single refresh.
    """

    def __init__(
        self,
        client: BackendClient,
        session: Session | None = None,
        refresh_margin_s: float = 60,
    ) -> None:
        self._session = session
        self._refresh_margin_s = refresh_margin_s
        self._events = AuthEventEmitter()
        self._refresh_lock = asyncio.Lock()
        self._client = client.with_token_provider(self.access_token)

    @property
    def client(self) -> BackendClient:
        """A backend client that sends this provider's access token."""
        return self._client

    @property
    def current_session(self) -> Session | None:
        return self._session

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        return self._events.subscribe(callback)

    async def get_session(self) -> Session | None:
        session = self._session
        if session is None:
            return None
        if not session.expires_within(self._refresh_margin_s):
            return session
        async with self._refresh_lock:
            # Another caller may have refreshed or ended the session meanwhile.
            current = self._session
            if current is None or not current.expires_within(self._refresh_margin_s):
                return current
            return await self._refresh(current)

    async def access_token(self) -> str | None:
        session = await self.get_session()
        return session.access_token if session else None

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        try:
            data = await self._client.post(
                "/api/v1/auth/login",
                json={"email": email, "password": password},
                authenticated=False,
            )
        except BackendError as exc:
            if exc.status_code in _CREDENTIAL_STATUSES:
                raise CredentialError(str(exc.detail or "Invalid login credentials")) from exc
            raise
        return self._adopt(Session.model_validate(data), AuthEvent.SIGNED_IN)

    async def register_organization(
        self, org_name: str, full_name: str, email: str, password: str
    ) -> Session:
        """Create an organization with its first admin and sign in as that admin."""
        data = await self._client.post(
            "/api/v1/auth/register",
            json={
                "org_name": org_name,
                "full_name": full_name,
                "email": email,
                "password": password,
            },
            authenticated=False,
        )
        log.info("organization_registered", org_name=org_name, email=email)
        return self._adopt(Session.model_validate(data), AuthEvent.SIGNED_IN)

    async def update_user(
        self, *, password: str | None = None, full_name: str | None = None
    ) -> AuthUser:
        payload: dict[str, Any] = {}
        if password:
            payload["password"] = password
        if full_name is not None:
            payload["full_name"] = full_name
        data = await self._client.patch("/api/v1/auth/user", json=payload)
        user = AuthUser.model_validate(data)
        if self._session is not None:
            self._adopt(self._session.model_copy(update={"user": user}), AuthEvent.USER_UPDATED)
        return user

    async def sign_out(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            try:
                await self._client.post(
                    "/api/v1/auth/logout", token=session.access_token
                )
            except (BackendError, httpx.HTTPError) as exc:
                # The local session is gone either way.
                log.warning("remote_sign_out_failed", error=str(exc))
        self._events.emit(AuthEvent.SIGNED_OUT, None)

    async def _refresh(self, session: Session) -> Session | None:
        try:
            data = await self._client.post(
                "/api/v1/auth/refresh",
                json={"refresh_token": session.refresh_token},
                authenticated=False,
            )
        except (BackendError, httpx.HTTPError) as exc:
            log.warning("session_refresh_failed", user_id=session.user.id, error=str(exc))
            self._session = None
            self._events.emit(AuthEvent.SIGNED_OUT, None)
            return None
        return self._adopt(Session.model_validate(data), AuthEvent.TOKEN_REFRESHED)

    def _adopt(self, session: Session, event: AuthEvent) -> Session:
        self._session = session
        log.debug("session_adopted", auth_event=event.value, user_id=session.user.id)
        self._events.emit(event, session)
        return session
