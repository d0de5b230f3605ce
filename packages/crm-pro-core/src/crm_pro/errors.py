"""Exception hierarchy for the CRM client core."""

from __future__ import annotations

from typing import Any


class CrmError(Exception):
    """Base class for every error raised by crm_pro."""


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthError(CrmError):
    """An auth attempt failed; the auth context has been cleared."""


class CredentialError(AuthError):
    """The identity provider rejected the supplied credentials."""


class ProfileMissingError(AuthError):
    """The identity is valid but has no tenant profile.

    A session without a resolvable profile grants nothing, so the provider
    is signed out before this is raised.
    """


# ---------------------------------------------------------------------------
# Backend calls
# ---------------------------------------------------------------------------


class BackendError(CrmError):
    """A backend request failed with a non-success HTTP status."""

    def __init__(self, status_code: int, detail: Any = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Backend request failed ({status_code}): {detail}")


class NotFoundError(BackendError):
    pass


class ConflictError(BackendError):
    pass


# ---------------------------------------------------------------------------
# Authorization (programmatic route checks)
# ---------------------------------------------------------------------------


class AuthorizationError(CrmError):
    """Raised by RouteGuard.enforce when a location may not render.

    ``redirect`` carries the same redirect plain navigation would follow.
    """

    def __init__(self, message: str, redirect: Any) -> None:
        super().__init__(message)
        self.redirect = redirect


class NotAuthenticatedError(AuthorizationError):
    pass


class ForbiddenError(AuthorizationError):
    pass


class NavigationError(CrmError):
    """Redirects did not converge within the configured hop limit."""


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


class ImportValidationError(CrmError):
    """The uploaded CSV cannot be imported at all (as opposed to bad rows)."""
