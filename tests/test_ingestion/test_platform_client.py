"""Tests for the platform gateway client."""

import httpx
import pytest
import respx

from context_sync.ingestion.http_client import HTTPClientError, RetryConfig
from context_sync.ingestion.platform_client import HTTPPlatformClient

BASE = "http://gw"


@pytest.fixture
def client() -> HTTPPlatformClient:
    return HTTPPlatformClient(
        base_url=f"{BASE}/",
        token="gateway-token",
        retry_config=RetryConfig(max_retries=1, base_delay=0.001, jitter_factor=0.0),
        timeout=5.0,
        posts_count=50,
    )


class TestFetchAggregateMetrics:
    """Tests for the analytics endpoint."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_payload(self, client, analytics_payload):
        route = respx.get(f"{BASE}/api/organization/analytics/org-42").mock(
            return_value=httpx.Response(200, json=analytics_payload)
        )

        body = await client.fetch_aggregate_metrics("org-42")

        assert body == analytics_payload
        assert route.calls.last.request.headers["Authorization"] == "Bearer gateway-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_body(self, client):
        respx.get(f"{BASE}/api/organization/analytics/org-42").mock(
            return_value=httpx.Response(200, json=[1, 2])
        )

        with pytest.raises(ValueError, match="not a JSON object"):
            await client.fetch_aggregate_metrics("org-42")

    @pytest.mark.asyncio
    @respx.mock
    async def test_upstream_error(self, client):
        respx.get(f"{BASE}/api/organization/analytics/org-42").mock(
            return_value=httpx.Response(401, json={"error": "token expired"})
        )

        with pytest.raises(HTTPClientError):
            await client.fetch_aggregate_metrics("org-42")


class TestFetchContentItems:
    """Tests for the posts endpoint."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_posts(self, client, posts_payload):
        route = respx.get(f"{BASE}/api/organization/posts/org-42").mock(
            return_value=httpx.Response(200, json={"posts": posts_payload})
        )

        posts = await client.fetch_content_items("org-42")

        assert posts == posts_payload
        assert route.calls.last.request.url.params["count"] == "50"

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_posts_list(self, client):
        respx.get(f"{BASE}/api/organization/posts/org-42").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        with pytest.raises(ValueError, match="no 'posts' list"):
            await client.fetch_content_items("org-42")
