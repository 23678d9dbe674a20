"""
Embedding generation for canonical context text.

Provides async embedding generation with:
- A pluggable provider (OpenAI text-embedding-3-small by default)
- Input truncation to the provider's safe length
- Redis caching keyed by content hash and model
- Circuit breaker protection around the provider
- Failures reported as values, never raised, so one bad item cannot
  abort a sync stage
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis
import structlog

from context_sync.config.settings import get_settings
from context_sync.embedding.circuit_breaker import CircuitBreaker, CircuitOpenError
from context_sync.embedding.config import EmbeddingConfig
from context_sync.errors import EmbeddingError
from context_sync.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that turns one text into one vector."""

    async def embed(self, text: str) -> list[float]: ...


class OpenAIEmbeddingProvider:
    """
    OpenAI embeddings API provider.

    The SDK is imported on first use so that environments without an API
    key (tests, the CLI's read-only commands) never load it.
    """

    def __init__(self, config: EmbeddingConfig | None = None, api_key: str | None = None) -> None:
        self._config = config or EmbeddingConfig()
        self._api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize OpenAI async client."""
        if self._client is None:
            import openai

            key_str = self._api_key
            if key_str is None:
                secret = get_settings().openai_api_key
                key_str = secret.get_secret_value() if secret else None
            self._client = openai.AsyncOpenAI(
                api_key=key_str,
                timeout=self._config.request_timeout,
                max_retries=self._config.max_retries,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        client = self._get_client()
        response = await client.embeddings.create(
            model=self._config.model_name,
            input=text,
        )
        if not response.data:
            return []
        return list(response.data[0].embedding)

    async def close(self) -> None:
        """Clean up SDK client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


@dataclass(frozen=True)
class EmbeddingResult:
    """
    Outcome of one embedding attempt.

    ``vector`` is None either because the text was empty (``error`` is
    None too) or because generation failed (``error`` is set).
    """

    vector: list[float] | None
    error: EmbeddingError | None = None

    @property
    def succeeded(self) -> bool:
        return self.vector is not None


class EmbeddingService:
    """
    Generates embeddings for canonical text.

    Usage:
        service = EmbeddingService(redis_client=redis_client)
        result = await service.embed(text)
        if result.vector is None and result.error:
            ...  # persist with a null vector, retry next run
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        provider: EmbeddingProvider | None = None,
        redis_client: redis.Redis | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        """
        Initialize the embedding service.

        Args:
            config: Embedding configuration (uses defaults if None)
            provider: Embedding provider (OpenAI if None)
            redis_client: Redis client for caching (optional)
            breaker: Circuit breaker around the provider (built from config if None)
        """
        self._config = config or EmbeddingConfig()
        self._provider = provider or OpenAIEmbeddingProvider(self._config)
        self._redis = redis_client
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=self._config.circuit_failure_threshold,
            recovery_timeout=self._config.circuit_recovery_timeout,
            name="embedding_provider",
        )
        self._metrics = get_metrics()

        logger.info(
            "EmbeddingService created",
            model=self._config.model_name,
            dimensions=self._config.dimensions,
            cache_enabled=self._config.cache_enabled and redis_client is not None,
        )

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def truncate(self, text: str) -> str:
        """Clip text to the provider's maximum input length."""
        return text[: self._config.max_input_chars]

    def _make_cache_key(self, text: str) -> str:
        """Create cache key from model and content hash."""
        content_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
        return f"{self._config.cache_key_prefix}{self._config.model_name}:{content_hash}"

    async def _get_cached_embedding(self, text: str) -> list[float] | None:
        """
        Try to retrieve embedding from cache.

        An entry that does not decode to a vector of the configured
        dimensions is treated as a miss and overwritten by the next store.
        """
        if not self._config.cache_enabled or not self._redis:
            return None

        cache_key = self._make_cache_key(text)
        try:
            cached = await self._redis.get(cache_key)
            vector = json.loads(cached) if cached else None
        except (ValueError, TypeError) as e:
            logger.warning("Discarding unreadable cached embedding", key=cache_key, error=str(e))
            vector = None
        except Exception as e:
            logger.warning("Cache retrieval failed", error=str(e))
            return None

        if vector is not None and (
            not isinstance(vector, list) or len(vector) != self._config.dimensions
        ):
            logger.warning("Discarding cached embedding with wrong shape", key=cache_key)
            vector = None

        self._metrics.record_embedding_cache(hit=vector is not None)
        if vector is not None:
            logger.debug("Cache hit for embedding", key=cache_key)
        return vector

    async def _cache_embedding(self, text: str, vector: list[float]) -> None:
        """Store embedding in cache."""
        if not self._config.cache_enabled or not self._redis:
            return

        try:
            await self._redis.setex(
                self._make_cache_key(text),
                self._config.cache_ttl_seconds,
                json.dumps(vector),
            )
        except Exception as e:
            logger.warning("Cache storage failed", error=str(e))

    async def _call_provider(self, text: str) -> list[float]:
        vector = await self._provider.embed(text)
        if not vector:
            raise EmbeddingError("Provider returned an empty vector")
        if len(vector) != self._config.dimensions:
            raise EmbeddingError(
                f"Provider returned {len(vector)} dimensions, expected {self._config.dimensions}"
            )
        return [float(x) for x in vector]

    async def embed(self, text: str) -> EmbeddingResult:
        """
        Generate an embedding for one text.

        Empty or whitespace-only text yields no vector and no error without
        calling the provider. Every provider failure is returned in
        ``EmbeddingResult.error``.

        Args:
            text: Canonical text to embed

        Returns:
            EmbeddingResult with the vector or the failure
        """
        if not text or not text.strip():
            self._metrics.record_embedding_request("skipped_empty")
            return EmbeddingResult(vector=None)

        truncated = self.truncate(text)

        cached = await self._get_cached_embedding(truncated)
        if cached is not None:
            return EmbeddingResult(vector=cached)

        start = time.perf_counter()
        try:
            vector = await self._breaker.call(self._call_provider, truncated)
        except CircuitOpenError as e:
            self._metrics.record_embedding_request("circuit_open")
            return EmbeddingResult(vector=None, error=EmbeddingError(str(e)))
        except EmbeddingError as e:
            self._metrics.record_embedding_request("error")
            logger.warning("Embedding response rejected", error=str(e))
            return EmbeddingResult(vector=None, error=e)
        except Exception as e:
            self._metrics.record_embedding_request("error")
            logger.warning("Embedding provider call failed", error=str(e), error_type=type(e).__name__)
            return EmbeddingResult(
                vector=None, error=EmbeddingError(f"{type(e).__name__}: {e}")
            )

        self._metrics.record_embedding_request("success", time.perf_counter() - start)
        await self._cache_embedding(truncated, vector)
        return EmbeddingResult(vector=vector)

    async def close(self) -> None:
        """Release provider resources."""
        close = getattr(self._provider, "close", None)
        if close is not None:
            await close()
