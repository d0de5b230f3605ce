"""Identity provider contract and the auth-event fan-out shared by implementations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from crm_pro.models import AuthUser, Session

log = structlog.get_logger(__name__)


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthChange:
    """One provider push: the event name plus the session it leaves behind."""

    event: AuthEvent
    session: Session | None

    @property
    def auth_user(self) -> AuthUser | None:
        return self.session.user if self.session else None


AuthChangeCallback = Callable[[AuthChange], None]


class Subscription:
    """Handle returned by ``on_auth_state_change``; unsubscribing is idempotent."""

    def __init__(self, remove: Callable[[], None]) -> None:
        self._remove: Callable[[], None] | None = remove

    @property
    def active(self) -> bool:
        return self._remove is not None

    def unsubscribe(self) -> None:
        if self._remove is not None:
            self._remove()
            self._remove = None


class IdentityProvider(Protocol):
    """The hosted identity capability the auth core depends on."""

    async def get_session(self) -> Session | None: ...
    async def sign_in_with_password(self, email: str, password: str) -> Session: ...
    async def sign_out(self) -> None: ...
    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription: ...


class AuthEventEmitter:
    """Delivers auth changes to subscribers in registration order.

    Callbacks run synchronously inside ``emit``. A failing callback is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._callbacks: list[AuthChangeCallback] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: AuthChangeCallback) -> Subscription:
        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Subscription(_remove)

    def emit(self, event: AuthEvent, session: Session | None) -> None:
        change = AuthChange(event=event, session=session)
        log.debug("auth_event_emitted", auth_event=event.value, subscribers=len(self._callbacks))
        for callback in list(self._callbacks):
            try:
                callback(change)
            except Exception:
                log.exception("auth_subscriber_failed", auth_event=event.value)
