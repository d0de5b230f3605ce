"""CRM Pro - multi-tenant CRM client core."""

__all__ = ["AuthStateMachine", "CrmConfig", "Navigator", "RouteGuard"]
__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy imports so ``crm_pro.models`` stays importable without httpx."""
    if name == "CrmConfig":
        from crm_pro.config import CrmConfig

        return CrmConfig
    if name == "AuthStateMachine":
        from crm_pro.auth.state import AuthStateMachine

        return AuthStateMachine
    if name == "RouteGuard":
        from crm_pro.routing.guard import RouteGuard

        return RouteGuard
    if name == "Navigator":
        from crm_pro.routing.navigator import Navigator

        return Navigator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
