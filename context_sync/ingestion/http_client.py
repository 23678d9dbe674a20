"""
HTTP infrastructure for talking to the platform gateway.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async JSON GET client with automatic retry

Keeps transport concerns (retries, backoff, auth header) out of the
platform client, which only knows endpoints and payload shapes.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)

        Returns:
            Backoff duration in seconds with jitter applied
        """
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        """429 and the transient 5xx codes are retried; everything else is final."""
        return status_code in _RETRYABLE_STATUS

    def is_retryable_exception(self, exc: Exception) -> bool:
        """Timeouts and connection/read errors are retried."""
        return isinstance(exc, _RETRYABLE_EXCEPTIONS)


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Raised when rate limit is hit and all retries exhausted."""


class HTTPClient:
    """
    Async HTTP client with retry logic.

    Example:
        async with HTTPClient(RetryConfig(max_retries=3), bearer_token="t") as client:
            data = await client.get_json("https://gateway/api/organization/posts/42")
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        bearer_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
            bearer_token: Optional token sent as ``Authorization: Bearer``.
            transport: Optional httpx transport (tests).
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._bearer_token = bearer_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        headers = {"Accept": "application/json"}
        if self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        GET a URL and decode the JSON body, retrying transient failures.

        Raises:
            HTTPClientError: On non-retryable errors, undecodable bodies,
                or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
        """
        response = await self._request_with_retry(url, params)
        try:
            return response.json()
        except ValueError as e:
            raise HTTPClientError(
                f"Invalid JSON from {url}",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from e

    async def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None,
    ) -> httpx.Response:
        """Execute a GET with exponential backoff and jitter on retryable errors."""
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        max_attempts = self.retry_config.max_retries + 1

        for attempt in range(max_attempts):
            try:
                response = await self._client.get(url, params=params)
            except _RETRYABLE_EXCEPTIONS as e:
                if attempt < self.retry_config.max_retries:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable error {type(e).__name__} for {url}, "
                        f"attempt {attempt + 1}/{max_attempts}, "
                        f"backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {e}"
                ) from e

            if self.retry_config.is_retryable_status(response.status_code):
                if attempt < self.retry_config.max_retries:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable status {response.status_code} from {url}, "
                        f"attempt {attempt + 1}/{max_attempts}, "
                        f"backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue

                error_cls = RateLimitError if response.status_code == 429 else HTTPClientError
                raise error_cls(
                    f"Request failed with status {response.status_code} "
                    f"after {attempt + 1} attempts",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            if response.status_code >= 400:
                raise HTTPClientError(
                    f"Request failed with status {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            return response

        # Unreachable: the loop either returns or raises
        raise HTTPClientError(f"Request failed after {max_attempts} attempts")
