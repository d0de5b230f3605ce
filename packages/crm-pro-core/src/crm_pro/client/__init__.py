"""HTTP access to the tenant backend."""

from crm_pro.client.http import BackendClient
from crm_pro.client.identity import HttpIdentityProvider

__all__ = ["BackendClient", "HttpIdentityProvider"]
