"""FastAPI dependency injection for database sessions and repositories."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm_pro_service.db.engine import get_session_factory
from crm_pro_service.db.repositories.auth import AuthRepo
from crm_pro_service.db.repositories.crm import (
    CompaniesRepo,
    ContactsRepo,
    DealsRepo,
    ProductsRepo,
    TaskCommentsRepo,
    TasksRepo,
    TicketsRepo,
)
from crm_pro_service.db.repositories.history import LeadActivitiesRepo, LeadFollowUpsRepo
from crm_pro_service.db.repositories.leads import LeadsRepo
from crm_pro_service.db.repositories.users import UsersRepo


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an async DB session, auto-closing on exit."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_auth_repo(session: SessionDep) -> AuthRepo:
    return AuthRepo(session)


def get_users_repo(session: SessionDep) -> UsersRepo:
    return UsersRepo(session)


def get_leads_repo(session: SessionDep) -> LeadsRepo:
    return LeadsRepo(session)


def get_companies_repo(session: SessionDep) -> CompaniesRepo:
    return CompaniesRepo(session)


def get_contacts_repo(session: SessionDep) -> ContactsRepo:
    return ContactsRepo(session)


def get_deals_repo(session: SessionDep) -> DealsRepo:
    return DealsRepo(session)


def get_tasks_repo(session: SessionDep) -> TasksRepo:
    return TasksRepo(session)


def get_tickets_repo(session: SessionDep) -> TicketsRepo:
    return TicketsRepo(session)


def get_products_repo(session: SessionDep) -> ProductsRepo:
    return ProductsRepo(session)


def get_task_comments_repo(session: SessionDep) -> TaskCommentsRepo:
    return TaskCommentsRepo(session)


def get_lead_activities_repo(session: SessionDep) -> LeadActivitiesRepo:
    return LeadActivitiesRepo(session)


def get_lead_follow_ups_repo(session: SessionDep) -> LeadFollowUpsRepo:
    return LeadFollowUpsRepo(session)


AuthRepoDep = Annotated[AuthRepo, Depends(get_auth_repo)]
UsersRepoDep = Annotated[UsersRepo, Depends(get_users_repo)]
LeadsRepoDep = Annotated[LeadsRepo, Depends(get_leads_repo)]
CompaniesRepoDep = Annotated[CompaniesRepo, Depends(get_companies_repo)]
ContactsRepoDep = Annotated[ContactsRepo, Depends(get_contacts_repo)]
DealsRepoDep = Annotated[DealsRepo, Depends(get_deals_repo)]
TasksRepoDep = Annotated[TasksRepo, Depends(get_tasks_repo)]
TicketsRepoDep = Annotated[TicketsRepo, Depends(get_tickets_repo)]
ProductsRepoDep = Annotated[ProductsRepo, Depends(get_products_repo)]
TaskCommentsRepoDep = Annotated[TaskCommentsRepo, Depends(get_task_comments_repo)]
LeadActivitiesRepoDep = Annotated[LeadActivitiesRepo, Depends(get_lead_activities_repo)]
LeadFollowUpsRepoDep = Annotated[LeadFollowUpsRepo, Depends(get_lead_follow_ups_repo)]
