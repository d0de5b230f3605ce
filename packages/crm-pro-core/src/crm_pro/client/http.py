"""Thin JSON client for the tenant backend REST API."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from pydantic_core import to_jsonable_python

from crm_pro.config import CrmConfig
from crm_pro.errors import BackendError, ConflictError, NotFoundError

log = structlog.get_logger(__name__)

TokenProvider = Callable[[], Awaitable[str | None]]

_STATUS_ERRORS: dict[int, type[BackendError]] = {
    404: NotFoundError,
    409: ConflictError,
}


def _error_detail(resp: httpx.Response) -> Any:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return body["detail"]
    return body


class BackendClient:
    """Sends one request per call and maps error statuses to ``BackendError``.

    ``token_provider`` is awaited before every request so the bearer header
    always carries the current (possibly refreshed) access token.
    ``transport`` is passed through to ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._token_provider = token_provider
        self._transport = transport

    @classmethod
    def from_config(cls, config: CrmConfig, **kwargs: Any) -> BackendClient:
        return cls(config.api_url, timeout=config.request_timeout_s, **kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    def with_token_provider(self, token_provider: TokenProvider) -> BackendClient:
        return BackendClient(
            self._base_url,
            timeout=self._timeout,
            token_provider=token_provider,
            transport=self._transport,
        )

    async def _headers(self, authenticated: bool) -> dict[str, str]:
        if not authenticated or self._token_provider is None:
            return {}
        token = await self._token_provider()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        token: str | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body (None for 204).

        ``token`` overrides the token provider for this call.
        """
        headers = await self._headers(authenticated and token is None)
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        payload = to_jsonable_python(json) if json is not None else None

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.request(
                method,
                f"{self._base_url}{path}",
                json=payload,
                params=params,
                headers=headers,
            )

        if resp.status_code >= 400:
            detail = _error_detail(resp)
            log.warning(
                "backend_request_failed",
                method=method,
                path=path,
                status_code=resp.status_code,
                detail=detail,
            )
            error_cls = _STATUS_ERRORS.get(resp.status_code, BackendError)
            raise error_cls(resp.status_code, detail)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)
