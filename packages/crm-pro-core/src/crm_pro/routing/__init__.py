"""Role-gated routing: guard decisions, the route table and the navigator."""

from crm_pro.routing.guard import (
    Decision,
    DenialReason,
    Location,
    Redirect,
    Render,
    RouteGuard,
    Wait,
)
from crm_pro.routing.navigator import NavigationResult, Navigator
from crm_pro.routing.routes import (
    ADMIN_ONLY,
    ANY_ROLE,
    DEFAULT_ROUTES,
    NavigationItem,
    Route,
    RouteTable,
    navigation_items,
)

__all__ = [
    "ADMIN_ONLY",
    "ANY_ROLE",
    "DEFAULT_ROUTES",
    "Decision",
    "DenialReason",
    "Location",
    "NavigationItem",
    "NavigationResult",
    "Navigator",
    "Redirect",
    "Render",
    "Route",
    "RouteGuard",
    "RouteTable",
    "Wait",
    "navigation_items",
]
