"""Per-entity façades over the tenant backend."""

from crm_pro.services.activity import LeadActivityService, LeadFollowUpService
from crm_pro.services.base import EntityService, blank_to_none
from crm_pro.services.crm import (
    CompanyService,
    ContactService,
    DealService,
    OrganizationService,
    ProductService,
    TaskService,
)
from crm_pro.services.leads import LeadService
from crm_pro.services.tickets import TicketService, apply_status_transition
from crm_pro.services.users import UserService

__all__ = [
    "CompanyService",
    "ContactService",
    "DealService",
    "EntityService",
    "LeadActivityService",
    "LeadFollowUpService",
    "LeadService",
    "OrganizationService",
    "ProductService",
    "TaskService",
    "TicketService",
    "UserService",
    "apply_status_transition",
    "blank_to_none",
]
