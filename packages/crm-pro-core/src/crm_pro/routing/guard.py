"""Role-gated route guard.

``RouteGuard.check`` is a pure function of the auth snapshot, the requested
location and the route's allowed roles. It never redirects while the auth
context is still loading.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

import structlog

from crm_pro.auth.state import AuthContext, AuthStateMachine
from crm_pro.config import CrmConfig
from crm_pro.errors import ForbiddenError, NotAuthenticatedError
from crm_pro.models import Role

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Location:
    path: str
    query: str = ""
    state: dict[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, url: str, state: dict[str, Any] | None = None) -> Location:
        parts = urlsplit(url)
        return cls(path=parts.path or "/", query=parts.query, state=state)

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    UNKNOWN_ROUTE = "unknown_route"


@dataclass(frozen=True)
class Render:
    location: Location


@dataclass(frozen=True)
class Wait:
    location: Location


@dataclass(frozen=True)
class Redirect:
    to: str
    reason: DenialReason
    state: dict[str, Any] | None = None
    replace: bool = True


Decision = Render | Wait | Redirect


class RouteGuard:
    def __init__(self, login_path: str = "/login", default_path: str = "/") -> None:
        self.login_path = login_path
        self.default_path = default_path

    @classmethod
    def from_config(cls, config: CrmConfig) -> RouteGuard:
        return cls(login_path=config.login_path, default_path=config.default_path)

    def check(
        self,
        context: AuthContext,
        location: Location,
        allowed_roles: Iterable[Role] | None = None,
    ) -> Decision:
        if context.is_loading:
            return Wait(location)

        if context.session is None or context.profile is None:
            return Redirect(
                to=self.login_path,
                reason=DenialReason.UNAUTHENTICATED,
                state={"from": location},
            )

        roles = frozenset(allowed_roles or ())
        if roles and context.profile.role not in roles:
            log.info(
                "route_forbidden",
                path=location.path,
                role=context.profile.role.value,
                allowed=sorted(r.value for r in roles),
            )
            return Redirect(to=self.default_path, reason=DenialReason.FORBIDDEN)

        return Render(location)

    def enforce(
        self,
        context: AuthContext,
        location: Location,
        allowed_roles: Iterable[Role] | None = None,
    ) -> Render | Wait:
        """Like ``check`` but raises instead of returning a redirect.

        Raises:
            NotAuthenticatedError: no session or no profile.
            ForbiddenError: the profile's role is not allowed here.
        """
        decision = self.check(context, location, allowed_roles)
        if isinstance(decision, Redirect):
            if decision.reason is DenialReason.UNAUTHENTICATED:
                raise NotAuthenticatedError(
                    f"Authentication required for {location.path}", decision
                )
            raise ForbiddenError(f"Role not permitted for {location.path}", decision)
        return decision

    async def authorize(
        self,
        machine: AuthStateMachine,
        location: Location,
        allowed_roles: Iterable[Role] | None = None,
    ) -> Render:
        """Wait for the auth context to settle, then ``enforce``.

        Waits again when the snapshot it wakes up to is loading once more.
        """
        while True:
            context = await machine.wait_until_settled()
            decision = self.enforce(context, location, allowed_roles)
            if isinstance(decision, Render):
                return decision
