"""Navigator: resolves a path through the layout guard and the route guard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from crm_pro.auth.state import AuthContext
from crm_pro.config import CrmConfig
from crm_pro.errors import NavigationError
from crm_pro.routing.guard import (
    Decision,
    DenialReason,
    Location,
    Redirect,
    Render,
    RouteGuard,
    Wait,
)
from crm_pro.routing.routes import NavigationItem, Route, RouteTable, navigation_items

log = structlog.get_logger(__name__)


class AuthSource(Protocol):
    @property
    def context(self) -> AuthContext: ...


@dataclass
class NavigationResult:
    location: Location
    decision: Decision
    route: Route | None = None
    redirects: list[Redirect] = field(default_factory=list)

    @property
    def rendered(self) -> bool:
        return isinstance(self.decision, Render)

    @property
    def waiting(self) -> bool:
        return isinstance(self.decision, Wait)


class Navigator:
    """Follows guard redirects until a location renders or must wait.

    Public routes render unconditionally. Every other path first passes the
    app-layout guard (authentication only), then falls back to ``/`` if
    unknown, then passes its own role guard.
    """

    def __init__(
        self,
        auth: AuthSource,
        routes: RouteTable | None = None,
        guard: RouteGuard | None = None,
        max_redirects: int = 5,
    ) -> None:
        self._auth = auth
        self._routes = routes or RouteTable()
        self._guard = guard or RouteGuard()
        self._max_redirects = max_redirects
        self.history: list[Location] = []

    @classmethod
    def from_config(cls, auth: AuthSource, config: CrmConfig) -> Navigator:
        return cls(
            auth,
            routes=RouteTable(fallback=config.default_path),
            guard=RouteGuard.from_config(config),
            max_redirects=config.max_redirects,
        )

    @property
    def current(self) -> Location | None:
        return self.history[-1] if self.history else None

    def navigate(self, path: str, state: dict[str, Any] | None = None) -> NavigationResult:
        location = Location.parse(path, state)
        redirects: list[Redirect] = []
        context = self._auth.context

        while True:
            route, decision = self._evaluate(context, location)
            if not isinstance(decision, Redirect):
                result = NavigationResult(location, decision, route, redirects)
                if isinstance(decision, Render):
                    self.history.append(location)
                return result

            redirects.append(decision)
            if len(redirects) > self._max_redirects:
                log.error(
                    "redirect_loop",
                    start=path,
                    hops=[r.to for r in redirects],
                )
                raise NavigationError(f"Too many redirects starting from {path}")
            log.debug("navigation_redirect", frm=location.path, to=decision.to, reason=decision.reason.value)
            location = Location.parse(decision.to, decision.state)

    def return_to_after_login(self) -> NavigationResult:
        """Go back to where the login redirect came from, or to the default path."""
        current = self.current
        origin = (current.state or {}).get("from") if current else None
        if isinstance(origin, Location):
            return self.navigate(origin.url, origin.state)
        return self.navigate(self._guard.default_path)

    def navigation_items(self) -> list[NavigationItem]:
        current = self.current
        return navigation_items(self._auth.context.profile, current.path if current else "/")

    def _evaluate(self, context: AuthContext, location: Location) -> tuple[Route | None, Decision]:
        route = self._routes.resolve(location.path)
        if route is not None and route.public:
            return route, Render(location)

        layout = self._guard.check(context, location)
        if not isinstance(layout, Render):
            return route, layout

        if route is None:
            return None, Redirect(to=self._routes.fallback, reason=DenialReason.UNKNOWN_ROUTE)

        return route, self._guard.check(context, location, route.allowed_roles)
