"""Auth state machine: reconciles the provider session and the tenant profile.

The machine owns a single immutable ``AuthContext`` snapshot. Two kinds of
writer exist:

* the reconciler task, which is the only subscriber to the identity
  provider and consumes its pushes (plus the initial session check) one at
  a time from an ``asyncio.Queue``;
* the explicit ``login`` / ``logout`` operations.

Everything runs on one event loop, so no locking is needed. Ordering
between a ``login`` in flight and a provider push is last-write-wins.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import structlog

from crm_pro.auth.identity import AuthChange, IdentityProvider, Subscription
from crm_pro.auth.profile import ProfileResolver
from crm_pro.errors import CredentialError, ProfileMissingError
from crm_pro.models import AuthUser, Role, Session, UserProfile

log = structlog.get_logger(__name__)


class AuthPhase(str, Enum):
    INITIALIZING = "initializing"
    PROFILE_PENDING = "profile_pending"
    PROFILE_READY = "profile_ready"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class AuthContext:
    """Read-only view of the current authorization state."""

    session: Session | None = None
    auth_user: AuthUser | None = None
    profile: UserProfile | None = None
    is_loading: bool = True
    phase: AuthPhase = AuthPhase.INITIALIZING

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.profile is not None

    def has_role(self, *roles: Role) -> bool:
        return self.profile is not None and self.profile.role in roles


SIGNED_OUT = AuthContext(is_loading=False, phase=AuthPhase.UNAUTHENTICATED)


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str | None = None


ContextListener = Callable[[AuthContext], None]

_INITIAL_CHECK = object()


class AuthStateMachine:
    """Single owner of the auth context.

    Usage::

        machine = AuthStateMachine(provider, users)
        await machine.start()
        context = await machine.wait_until_settled()
        ...
        await machine.close()
    """

    def __init__(self, provider: IdentityProvider, profiles: ProfileResolver) -> None:
        self._provider = provider
        self._profiles = profiles
        self._context = AuthContext()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._subscription: Subscription | None = None
        self._reconciler: asyncio.Task[None] | None = None
        self._listeners: list[ContextListener] = []
        self._settled = asyncio.Event()
        # Access tokens of sessions obtained by login(). Their SIGNED_IN push
        # is already handled by login itself and is dropped by the reconciler.
        self._login_tokens: set[str] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def context(self) -> AuthContext:
        return self._context

    @property
    def is_running(self) -> bool:
        return self._reconciler is not None and not self._reconciler.done()

    def has_role(self, *roles: Role) -> bool:
        return self._context.has_role(*roles)

    def watch(self, listener: ContextListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def wait_until_settled(self) -> AuthContext:
        """Wait until ``is_loading`` is false and return that snapshot."""
        await self._settled.wait()
        return self._context

    async def idle(self) -> None:
        """Wait until every queued provider event has been reconciled."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the provider and schedule the initial session check.

        Returns immediately; the context stays ``INITIALIZING`` with
        ``is_loading`` set until the check completes.
        """
        if self._reconciler is not None:
            return
        self._set(AuthContext())
        self._subscription = self._provider.on_auth_state_change(self._queue.put_nowait)
        self._queue.put_nowait(_INITIAL_CHECK)
        self._reconciler = asyncio.create_task(self._reconcile(), name="auth-reconciler")
        log.debug("auth_state_machine_started")

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._reconciler is not None:
            self._reconciler.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconciler
            self._reconciler = None
        self._listeners.clear()

    async def __aenter__(self) -> AuthStateMachine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Explicit operations
    # ------------------------------------------------------------------

    async def login(self, credentials: Credentials) -> UserProfile:
        """Sign in and resolve the profile.

        On any failure the context is cleared and the error re-raised. A
        valid identity without a profile is signed out again and reported as
        ``ProfileMissingError``. ``is_loading`` is always cleared on exit.
        The provider's own push for this sign-in is not reconciled again.
        """
        self._set(replace(self._context, is_loading=True))
        try:
            if not credentials.password:
                raise CredentialError("Password is required for login.")
            session = await self._provider.sign_in_with_password(
                credentials.email, credentials.password
            )
            self._login_tokens.add(session.access_token)
            try:
                profile = await self._profiles.resolve(session.user.id)
            except Exception:
                await self._force_sign_out()
                raise
            if profile is None:
                log.warning("profile_missing", auth_user_id=session.user.id, during="login")
                await self._force_sign_out()
                raise ProfileMissingError("Login failed: user profile not found.")
            self._set(
                AuthContext(
                    session=session,
                    auth_user=session.user,
                    profile=profile,
                    is_loading=False,
                    phase=AuthPhase.PROFILE_READY,
                )
            )
            log.info("login_succeeded", user_id=profile.id, org_id=profile.org_id)
            return profile
        except Exception as exc:
            log.warning("login_failed", email=credentials.email, error=str(exc))
            self._set(SIGNED_OUT)
            raise
        finally:
            if self._context.is_loading:
                self._set(replace(self._context, is_loading=False))

    async def logout(self) -> None:
        """Ask the provider to sign out.

        The context is cleared by the provider's ``SIGNED_OUT`` push, not by
        this call. If the provider call itself fails, only ``is_loading`` is
        reset.
        """
        self._set(replace(self._context, is_loading=True))
        try:
            await self._provider.sign_out()
        except Exception as exc:
            log.error("logout_failed", error=str(exc))
            self._set(replace(self._context, is_loading=False))

    # ------------------------------------------------------------------
    # Reconciler
    # ------------------------------------------------------------------

    async def _reconcile(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _INITIAL_CHECK:
                    await self._check_initial_session()
                else:
                    await self._apply(item)
            except Exception:
                log.exception("auth_reconcile_failed")
                self._set(SIGNED_OUT)
            finally:
                self._queue.task_done()

    async def _check_initial_session(self) -> None:
        try:
            session = await self._provider.get_session()
        except Exception as exc:
            log.warning("initial_session_failed", error=str(exc))
            session = None
        if session is None:
            self._set(SIGNED_OUT)
            return
        await self._adopt(session)

    async def _apply(self, change: AuthChange) -> None:
        log.debug(
            "auth_event_received",
            auth_event=change.event.value,
            has_session=change.session is not None,
        )
        if change.session is None:
            self._set(SIGNED_OUT)
            return
        if change.session.access_token in self._login_tokens:
            self._login_tokens.discard(change.session.access_token)
            log.debug("login_push_skipped", auth_user_id=change.session.user.id)
            return
        await self._adopt(change.session)

    async def _adopt(self, session: Session) -> None:
        user = session.user
        previous = self._context
        # A profile only survives re-resolution if it belongs to the same identity.
        carried = previous.profile
        if carried is not None and carried.auth_user_id != user.id:
            carried = None
        self._set(
            AuthContext(
                session=session,
                auth_user=user,
                profile=carried,
                is_loading=previous.is_loading or carried is None,
                phase=AuthPhase.PROFILE_PENDING,
            )
        )
        try:
            profile = await self._profiles.resolve(user.id)
        except Exception as exc:
            log.warning("profile_fetch_failed", auth_user_id=user.id, error=str(exc))
            profile = None
        if profile is None:
            log.warning("profile_missing", auth_user_id=user.id, during="reconcile")
            self._set(SIGNED_OUT)
            await self._force_sign_out()
            return
        self._set(
            AuthContext(
                session=session,
                auth_user=user,
                profile=profile,
                is_loading=False,
                phase=AuthPhase.PROFILE_READY,
            )
        )

    async def _force_sign_out(self) -> None:
        try:
            await self._provider.sign_out()
        except Exception as exc:
            log.warning("forced_sign_out_failed", error=str(exc))

    def _set(self, context: AuthContext) -> None:
        self._context = context
        if context.is_loading:
            self._settled.clear()
        else:
            self._settled.set()
        for listener in list(self._listeners):
            try:
                listener(context)
            except Exception:
                log.exception("auth_listener_failed")
