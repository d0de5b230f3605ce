"""Profile resolution: authenticated identity -> tenant-scoped profile."""

from __future__ import annotations

from typing import Protocol

from crm_pro.models import UserProfile


class ProfileResolver(Protocol):
    """Looks up the ``users`` row for an identity.

    Returns ``None`` when the identity has no profile. Transport failures
    propagate as exceptions; the auth state machine treats both the same way.
    """

    async def resolve(self, auth_user_id: str) -> UserProfile | None: ...
