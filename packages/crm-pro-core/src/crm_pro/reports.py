"""Report aggregation over fetched entity lists.

The reducers are pure functions; ``ReportService`` only fetches and hands
the rows to them.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, Field

from crm_pro.models import (
    Deal,
    DealStatus,
    FollowUpStatus,
    Lead,
    LeadActivity,
    LeadFollowUp,
    LeadStatus,
    Priority,
    Role,
    Task,
    TaskStatus,
    UserProfile,
)

log = structlog.get_logger(__name__)

UNKNOWN_SOURCE = "Unknown"

_CLOSED_DEAL_STATUSES = frozenset({DealStatus.WON, DealStatus.LOST, DealStatus.CANCELLED})
_CLOSED_TASK_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.CANCELLED})
_CLOSED_LEAD_STATUSES = frozenset({LeadStatus.CONVERTED, LeadStatus.LOST})
DASHBOARD_LIST_LIMIT = 5


class StatusCount(BaseModel):
    status: str
    count: int


class SourceCount(BaseModel):
    source: str
    count: int


class PriorityCount(BaseModel):
    priority: Priority
    count: int


class DealStatusSummary(BaseModel):
    status: DealStatus
    count: int
    total_value: float


class SalesReport(BaseModel):
    total_leads: int = 0
    new_leads_count: int = 0
    contacted_leads_count: int = 0
    qualified_leads_count: int = 0
    converted_leads_count: int = 0
    lost_leads_count: int = 0
    conversion_rate: float = 0
    leads_by_status: list[StatusCount] = Field(default_factory=list)
    leads_by_source: list[SourceCount] = Field(default_factory=list)
    total_deals: int = 0
    total_won_deals_value: float = 0
    deals_by_status: list[DealStatusSummary] = Field(default_factory=list)


class DealPageReport(BaseModel):
    total_deals_count: int = 0
    open_deals_value: float = 0
    won_deals_value: float = 0
    avg_won_deal_size: float = 0
    deals_by_status: list[DealStatusSummary] = Field(default_factory=list)


class TaskDashboardStats(BaseModel):
    total_tasks: int = 0
    open_tasks: int = 0
    overdue_tasks: int = 0
    tasks_by_status: list[StatusCount] = Field(default_factory=list)
    tasks_by_priority: list[PriorityCount] = Field(default_factory=list)


class DashboardSummary(BaseModel):
    my_total_leads: int = 0
    my_open_leads: int = 0
    total_leads: int = 0
    total_users_in_org: int | None = None
    tasks: TaskDashboardStats = Field(default_factory=TaskDashboardStats)
    sales: SalesReport | None = None
    upcoming_follow_ups: list[LeadFollowUp] = Field(default_factory=list)
    recent_activities: list[LeadActivity] = Field(default_factory=list)


def _deals_by_status(deals: Iterable[Deal]) -> list[DealStatusSummary]:
    # Insertion order of first appearance.
    summary: dict[DealStatus, DealStatusSummary] = {}
    for deal in deals:
        entry = summary.get(deal.status)
        if entry is None:
            entry = summary[deal.status] = DealStatusSummary(
                status=deal.status, count=0, total_value=0
            )
        entry.count += 1
        entry.total_value += deal.total_value
    return list(summary.values())


def lead_stats(leads: Sequence[Lead], deals: Sequence[Deal] = ()) -> SalesReport:
    """Org-wide sales report.

    Conversion rate is converted / (total - new) * 100, rounded to two
    places, and 0 when every lead is still new.
    """
    by_status = Counter(lead.status for lead in leads)
    by_source: Counter[str] = Counter(lead.source or UNKNOWN_SOURCE for lead in leads)

    total = len(leads)
    converted = by_status[LeadStatus.CONVERTED]
    new = by_status[LeadStatus.NEW]
    relevant = total - new
    conversion_rate = round(converted / relevant * 100, 2) if relevant > 0 else 0.0

    deal_summary = _deals_by_status(deals)
    won_value = next((d.total_value for d in deal_summary if d.status is DealStatus.WON), 0.0)

    return SalesReport(
        total_leads=total,
        new_leads_count=new,
        contacted_leads_count=by_status[LeadStatus.CONTACTED],
        qualified_leads_count=by_status[LeadStatus.QUALIFIED],
        converted_leads_count=converted,
        lost_leads_count=by_status[LeadStatus.LOST],
        conversion_rate=conversion_rate,
        leads_by_status=[StatusCount(status=s.value, count=by_status[s]) for s in LeadStatus],
        leads_by_source=[SourceCount(source=s, count=c) for s, c in by_source.items()],
        total_deals=len(deals),
        total_won_deals_value=won_value,
        deals_by_status=deal_summary,
    )


def deal_page_report(deals: Sequence[Deal]) -> DealPageReport:
    open_value = sum(d.total_value for d in deals if d.status not in _CLOSED_DEAL_STATUSES)
    won = [d for d in deals if d.status is DealStatus.WON]
    won_value = sum(d.total_value for d in won)
    return DealPageReport(
        total_deals_count=len(deals),
        open_deals_value=open_value,
        won_deals_value=won_value,
        avg_won_deal_size=won_value / len(won) if won else 0,
        deals_by_status=_deals_by_status(deals),
    )


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def task_dashboard_stats(tasks: Sequence[Task], now: datetime | None = None) -> TaskDashboardStats:
    """Open means not Done or Cancelled; overdue means open and past due."""
    now = _aware(now or datetime.now(UTC))
    open_tasks = [t for t in tasks if t.status not in _CLOSED_TASK_STATUSES]
    overdue = [t for t in open_tasks if t.due_date is not None and _aware(t.due_date) < now]
    by_status = Counter(t.status for t in tasks)
    by_priority = Counter(t.priority for t in tasks)
    return TaskDashboardStats(
        total_tasks=len(tasks),
        open_tasks=len(open_tasks),
        overdue_tasks=len(overdue),
        tasks_by_status=[StatusCount(status=s.value, count=by_status[s]) for s in TaskStatus],
        tasks_by_priority=[PriorityCount(priority=p, count=by_priority[p]) for p in Priority],
    )


def _upcoming(profile: UserProfile, follow_ups: Iterable[LeadFollowUp]) -> list[LeadFollowUp]:
    pending = [
        f for f in follow_ups if f.user_id == profile.id and f.status is FollowUpStatus.PENDING
    ]
    return sorted(pending, key=lambda f: _aware(f.due_date))[:DASHBOARD_LIST_LIMIT]


def dashboard_summary(
    profile: UserProfile,
    leads: Sequence[Lead],
    users: Sequence[UserProfile] | None = None,
    tasks: Sequence[Task] = (),
    deals: Sequence[Deal] = (),
    now: datetime | None = None,
    follow_ups: Sequence[LeadFollowUp] = (),
    activities: Sequence[LeadActivity] = (),
) -> DashboardSummary:
    """Dashboard cards for ``profile``.

    Everyone gets their own lead counts and task stats. Admins also get org
    totals and the sales report; for users ``total_leads`` is their own.
    The follow-up list keeps only ``profile``'s pending ones, soonest first.
    """
    mine = [lead for lead in leads if lead.owner_user_id == profile.id]
    is_admin = profile.role is Role.ADMIN
    return DashboardSummary(
        my_total_leads=len(mine),
        my_open_leads=sum(1 for lead in mine if lead.status not in _CLOSED_LEAD_STATUSES),
        total_leads=len(leads) if is_admin else len(mine),
        total_users_in_org=len(users) if is_admin and users is not None else None,
        tasks=task_dashboard_stats(tasks, now),
        sales=lead_stats(leads, deals) if is_admin else None,
        upcoming_follow_ups=_upcoming(profile, follow_ups),
        recent_activities=sorted(
            activities, key=lambda a: _aware(a.created_at or datetime.min), reverse=True
        )[:DASHBOARD_LIST_LIMIT],
    )


class ReportService:
    """Fetches entity lists and reduces them."""

    def __init__(self, leads, deals, tasks, users, follow_ups=None, activities=None) -> None:
        self._leads = leads
        self._deals = deals
        self._tasks = tasks
        self._users = users
        self._follow_ups = follow_ups
        self._activities = activities

    async def sales_report(self, org_id: str) -> SalesReport:
        leads = await self._leads.list(org_id)
        deals = await self._deals.list(org_id)
        report = lead_stats(leads, deals)
        log.debug("sales_report_built", org_id=org_id, leads=report.total_leads, deals=report.total_deals)
        return report

    async def deal_page_report(self, org_id: str) -> DealPageReport:
        return deal_page_report(await self._deals.list(org_id))

    async def task_dashboard_stats(self, org_id: str, now: datetime | None = None) -> TaskDashboardStats:
        return task_dashboard_stats(await self._tasks.list(org_id), now)

    async def dashboard(self, profile: UserProfile, now: datetime | None = None) -> DashboardSummary:
        org_id = profile.org_id
        leads = await self._leads.list(org_id)
        tasks = await self._tasks.list(org_id)
        users = deals = None
        if profile.role is Role.ADMIN:
            users = await self._users.list(org_id)
            deals = await self._deals.list(org_id)
        follow_ups = activities = ()
        if self._follow_ups is not None:
            follow_ups = await self._follow_ups.upcoming_for_user(
                profile.id, org_id, DASHBOARD_LIST_LIMIT
            )
        if self._activities is not None:
            activities = await self._activities.recent(org_id, DASHBOARD_LIST_LIMIT)
        return dashboard_summary(
            profile, leads, users, tasks, deals or (), now, follow_ups, activities
        )
