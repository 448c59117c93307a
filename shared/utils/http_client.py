"""
BugSage - REST Client
=====================

Async HTTP client for the hosted services BugSage talks to over REST
(the Supabase PostgREST endpoint in particular).

Each client carries a set of default headers (API key, bearer token)
and propagates the current correlation ID.

Usage:
    from shared.utils.http_client import RestClient

    async with RestClient(
        "https://project.supabase.co/rest/v1",
        default_headers={"apikey": anon_key},
        bearer_token=user_token,
    ) as client:
        response = await client.get("/analysis_history", params={"select": "*"})
"""

import httpx
from typing import Any, Optional
from dataclasses import dataclass

from shared.utils.logging import get_logger, get_correlation_id

logger = get_logger(__name__)


@dataclass
class RestClientConfig:
    """Configuration for the REST client."""
    timeout_seconds: float = 15.0
    user_agent: str = "BugSage-RestClient/1.0"


class RestClient:
    """
    Async REST client with default headers and bearer authentication.

    The underlying ``httpx.AsyncClient`` is created lazily and closed by
    ``close()`` or on leaving an ``async with`` block.
    """

    def __init__(
        self,
        base_url: str,
        default_headers: Optional[dict[str, str]] = None,
        bearer_token: Optional[str] = None,
        config: Optional[RestClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Base URL every request path is joined to
            default_headers: Headers sent with every request
            bearer_token: Token sent as ``Authorization: Bearer <token>``
            config: Optional configuration overrides
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.default_headers = dict(default_headers or {})
        self.bearer_token = bearer_token
        self.config = config or RestClientConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def _build_headers(self, extra_headers: Optional[dict] = None) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }
        headers.update(self.default_headers)

        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        if extra_headers:
            headers.update(extra_headers)

        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """
        Send a request and return the raw response.

        Transport failures propagate as ``httpx.HTTPError``; status codes
        are left for the caller to interpret.
        """
        client = await self._get_client()

        logger.debug(
            f"{method} {self.base_url}{path}",
            extra={"params": params}
        )

        response = await client.request(
            method,
            path,
            params=params,
            json=json,
            headers=self._build_headers(headers)
        )

        logger.debug(
            f"Response: {response.status_code}",
            extra={"path": path, "status": response.status_code}
        )

        return response

    async def get(self, path: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> httpx.Response:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        data: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        return await self.request("POST", path, params=params, json=data, headers=headers)

    async def patch(
        self,
        path: str,
        data: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        return await self.request("PATCH", path, params=params, json=data, headers=headers)

    async def delete(self, path: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> httpx.Response:
        return await self.request("DELETE", path, params=params, headers=headers)

    async def close(self) -> None:
        """Close the HTTP client and release its connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
