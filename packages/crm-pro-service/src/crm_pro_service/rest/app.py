"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_pro_service.db.engine import close_db, init_db
from crm_pro_service.rest.routes.auth import router as auth_router
from crm_pro_service.rest.routes.companies import router as companies_router
from crm_pro_service.rest.routes.contacts import router as contacts_router
from crm_pro_service.rest.routes.deals import router as deals_router
from crm_pro_service.rest.routes.health import router as health_router
from crm_pro_service.rest.routes.lead_history import router as lead_history_router
from crm_pro_service.rest.routes.leads import router as leads_router
from crm_pro_service.rest.routes.organizations import router as organizations_router
from crm_pro_service.rest.routes.products import router as products_router
from crm_pro_service.rest.routes.tasks import router as tasks_router
from crm_pro_service.rest.routes.tickets import router as tickets_router
from crm_pro_service.rest.routes.users import router as users_router
from crm_pro_service.settings import settings

ENTITY_ROUTERS = [
    (users_router, "users"),
    (organizations_router, "organizations"),
    (leads_router, "leads"),
    (lead_history_router, "lead-history"),
    (companies_router, "companies"),
    (contacts_router, "contacts"),
    (products_router, "products"),
    (deals_router, "deals"),
    (tasks_router, "tasks"),
    (tickets_router, "tickets"),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    yield
    await close_db()


def include_routers(app: FastAPI) -> FastAPI:
    # Public routes
    app.include_router(health_router, tags=["health"])

    # register/login/refresh are public; the rest of /auth needs a bearer token
    app.include_router(auth_router, prefix="/api/v1")

    # Tenant-scoped routes
    for router, tag in ENTITY_ROUTERS:
        app.include_router(router, prefix="/api/v1", tags=[tag])
    return app


def create_app() -> FastAPI:
    app = FastAPI(
        title="CRM Pro API",
        description="Multi-tenant CRM backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return include_routers(app)
