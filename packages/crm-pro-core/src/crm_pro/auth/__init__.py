"""Session/profile synchronization."""

from crm_pro.auth.identity import (
    AuthChange,
    AuthEvent,
    AuthEventEmitter,
    IdentityProvider,
    Subscription,
)
from crm_pro.auth.profile import ProfileResolver
from crm_pro.auth.state import (
    SIGNED_OUT,
    AuthContext,
    AuthPhase,
    AuthStateMachine,
    Credentials,
)

__all__ = [
    "SIGNED_OUT",
    "AuthChange",
    "AuthContext",
    "AuthEvent",
    "AuthEventEmitter",
    "AuthPhase",
    "AuthStateMachine",
    "Credentials",
    "IdentityProvider",
    "ProfileResolver",
    "Subscription",
]
