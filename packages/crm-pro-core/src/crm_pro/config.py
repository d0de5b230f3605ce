"""Configuration for the CRM client core."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_DASHBOARD_WIDGETS = ["myOpenLeads", "totalTasks", "upcomingFollowUps", "recentActivities"]


class CrmConfig(BaseModel):
    """Client-side settings: where the backend lives and how navigation behaves."""

    api_url: str = Field(default="http://localhost:8080", description="Tenant backend base URL")
    request_timeout_s: float = Field(default=30.0, gt=0)
    refresh_margin_s: int = Field(
        default=60, ge=0, description="Refresh the session this many seconds before expiry"
    )
    login_path: str = "/login"
    default_path: str = "/"
    max_redirects: int = Field(default=5, ge=1)
    dashboard_widgets: list[str] = Field(default_factory=lambda: list(DEFAULT_DASHBOARD_WIDGETS))

    model_config = {"populate_by_name": True}
