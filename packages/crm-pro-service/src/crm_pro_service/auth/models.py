"""Auth domain models."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass
class Identity:
    """A verified access token bound to a live session."""

    auth_user_id: UUID
    session_id: UUID
    email: str


@dataclass
class CurrentUser:
    """Identity plus the tenant profile. Role and org come from the profile row."""

    profile_id: UUID
    auth_user_id: UUID
    org_id: UUID
    email: str
    role: str  # "admin" | "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
