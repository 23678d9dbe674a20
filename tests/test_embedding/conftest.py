"""Pytest fixtures for embedding tests."""

from unittest.mock import AsyncMock

import pytest

from context_sync.embedding.config import EmbeddingConfig


class FakeProvider:
    """Provider returning a fixed vector and recording every input."""

    def __init__(self, vector: list[float] | None = None, error: Exception | None = None):
        self.vector = vector if vector is not None else [0.1, 0.2, 0.3]
        self.error = error
        self.calls: list[str] = []
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def embedding_config() -> EmbeddingConfig:
    """Small-dimension configuration for testing."""
    return EmbeddingConfig(
        model_name="test-embedding",
        dimensions=3,
        max_input_chars=1000,
        cache_enabled=False,
        circuit_failure_threshold=3,
        circuit_recovery_timeout=60,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.setex = AsyncMock()
    redis_mock.ping = AsyncMock()
    redis_mock.close = AsyncMock()
    return redis_mock


@pytest.fixture
def make_provider():
    """Factory for providers with a custom vector or error."""
    return FakeProvider
