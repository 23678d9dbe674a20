"""
Embedding generation for context records.

This module provides:
- EmbeddingService: truncation, caching and failure capture around a provider
- OpenAIEmbeddingProvider: default provider (text-embedding-3-small, 1536 dims)
- CircuitBreaker: fail-fast protection for provider outages
"""

from context_sync.embedding.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)
from context_sync.embedding.config import EmbeddingConfig
from context_sync.embedding.service import (
    EmbeddingProvider,
    EmbeddingResult,
    EmbeddingService,
    OpenAIEmbeddingProvider,
)

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "EmbeddingConfig",
    "EmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingService",
    "OpenAIEmbeddingProvider",
]
