"""
Client for the upstream content-platform gateway.

The gateway owns the OAuth flow and token refresh against the content
platform; this module only calls its read endpoints:

    GET {base}/api/organization/analytics/{organization_id}
    GET {base}/api/organization/posts/{organization_id}?count=N  -> {"posts": [...]}
"""

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from context_sync.config.settings import get_settings
from context_sync.ingestion.http_client import HTTPClient, RetryConfig

logger = logging.getLogger(__name__)


class PlatformClient(Protocol):
    """Source of raw organization data. Payloads are returned unparsed."""

    async def fetch_aggregate_metrics(self, organization_id: str) -> dict[str, Any]: ...

    async def fetch_content_items(self, organization_id: str) -> list[dict[str, Any]]: ...


class HTTPPlatformClient:
    """
    PlatformClient backed by the gateway's HTTP API.

    Each fetch opens a short-lived HTTPClient; sync runs make at most
    two upstream calls per organization.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
        posts_count: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._base_url = (base_url or settings.platform_api_url).rstrip("/")
        if token is None and settings.platform_api_token is not None:
            token = settings.platform_api_token.get_secret_value()
        self._token = token
        self._retry_config = retry_config or RetryConfig(
            max_retries=settings.max_http_retries,
            max_backoff_seconds=settings.max_backoff_seconds,
        )
        self._timeout = timeout or settings.platform_request_timeout
        self._posts_count = posts_count
        self._transport = transport

    def _client(self) -> HTTPClient:
        return HTTPClient(
            self._retry_config,
            timeout=self._timeout,
            bearer_token=self._token,
            transport=self._transport,
        )

    def _url(self, resource: str, organization_id: str) -> str:
        return f"{self._base_url}/api/organization/{resource}/{quote(organization_id, safe='')}"

    async def fetch_aggregate_metrics(self, organization_id: str) -> dict[str, Any]:
        """
        Fetch the organization's lifetime analytics payload.

        Raises:
            HTTPClientError: On transport failure or non-2xx status
            ValueError: If the body is not a JSON object
        """
        async with self._client() as client:
            body = await client.get_json(self._url("analytics", organization_id))

        if not isinstance(body, dict):
            raise ValueError("Analytics response is not a JSON object")
        logger.debug("Fetched analytics for %s", organization_id)
        return body

    async def fetch_content_items(self, organization_id: str) -> list[dict[str, Any]]:
        """
        Fetch the organization's posts.

        Raises:
            HTTPClientError: On transport failure or non-2xx status
            ValueError: If the body has no ``posts`` list
        """
        async with self._client() as client:
            body = await client.get_json(
                self._url("posts", organization_id),
                params={"count": self._posts_count},
            )

        posts = body.get("posts") if isinstance(body, dict) else None
        if not isinstance(posts, list):
            raise ValueError("Posts response has no 'posts' list")
        logger.debug("Fetched %d posts for %s", len(posts), organization_id)
        return posts
