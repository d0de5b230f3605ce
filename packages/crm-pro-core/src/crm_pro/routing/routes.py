"""Route table and sidebar navigation."""

from __future__ import annotations

from dataclasses import dataclass

from crm_pro.models import Role, UserProfile

ANY_ROLE: frozenset[Role] = frozenset({Role.ADMIN, Role.USER})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})


@dataclass(frozen=True)
class Route:
    """One navigable path.

    ``public`` routes skip the app layout guard entirely. ``allowed_roles``
    empty means any authenticated role.
    """

    path: str
    name: str
    allowed_roles: frozenset[Role] = frozenset()
    public: bool = False


DEFAULT_ROUTES: tuple[Route, ...] = (
    Route("/login", "Login", public=True),
    Route("/register-organization", "Register Organization", public=True),
    Route("/", "Dashboard"),
    Route("/leads", "Leads", ANY_ROLE),
    Route("/deals", "Deals", ANY_ROLE),
    Route("/companies", "Companies", ANY_ROLE),
    Route("/contacts", "Contacts", ANY_ROLE),
    Route("/tasks", "Tasks", ANY_ROLE),
    Route("/support", "Support", ANY_ROLE),
    Route("/products", "Products", ADMIN_ONLY),
    Route("/users", "Users", ADMIN_ONLY),
    Route("/reports", "Reports", ADMIN_ONLY),
    Route("/settings", "Settings", ANY_ROLE),
)


def normalize_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


class RouteTable:
    """Exact-match lookup with a catch-all fallback inside the app layout."""

    def __init__(self, routes: tuple[Route, ...] = DEFAULT_ROUTES, fallback: str = "/") -> None:
        self._routes = {r.path: r for r in routes}
        self.fallback = fallback

    def __iter__(self):
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def resolve(self, path: str) -> Route | None:
        """Return the route for ``path``, or None if only the catch-all matches."""
        return self._routes.get(normalize_path(path))


@dataclass(frozen=True)
class NavigationItem:
    name: str
    href: str
    roles: frozenset[Role]
    current: bool = False


SIDEBAR: tuple[tuple[str, str, frozenset[Role]], ...] = (
    ("Dashboard", "/", ANY_ROLE),
    ("Leads", "/leads", ANY_ROLE),
    ("Deals", "/deals", ANY_ROLE),
    ("Companies", "/companies", ANY_ROLE),
    ("Contacts", "/contacts", ANY_ROLE),
    ("Tasks", "/tasks", ANY_ROLE),
    ("Support", "/support", ANY_ROLE),
    ("Products", "/products", ADMIN_ONLY),
    ("Users", "/users", ADMIN_ONLY),
    ("Reports", "/reports", ADMIN_ONLY),
    ("Settings", "/settings", ANY_ROLE),
)


def _is_current(href: str, current_path: str) -> bool:
    if current_path == href:
        return True
    # "/" would prefix-match everything.
    return href != "/" and current_path.startswith(href)


def navigation_items(profile: UserProfile | None, current_path: str = "/") -> list[NavigationItem]:
    """Sidebar entries visible to ``profile``; empty when signed out."""
    if profile is None:
        return []
    current_path = normalize_path(current_path)
    return [
        NavigationItem(name=name, href=href, roles=roles, current=_is_current(href, current_path))
        for name, href, roles in SIDEBAR
        if profile.role in roles
    ]
