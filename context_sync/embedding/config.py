"""
Embedding service configuration.

Provides Pydantic settings for the embedding generator: provider model,
input limits, Redis caching and circuit breaker thresholds.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseSettings):
    """
    Configuration for the embedding generator.

    Settings can be overridden via environment variables prefixed with EMBEDDING_.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider model
    model_name: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model name",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        description="Expected embedding vector dimension",
    )
    max_input_chars: int = Field(
        default=30_000,
        ge=1,
        description="Input text is truncated to this many characters before the call",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Provider request timeout in seconds",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries performed by the provider SDK itself",
    )

    # Caching configuration
    cache_enabled: bool = Field(
        default=True,
        description="Enable Redis caching for embeddings",
    )
    cache_ttl_hours: int = Field(
        default=168,
        ge=1,
        description="Cache TTL in hours (default: 1 week)",
    )
    cache_key_prefix: str = Field(
        default="ctxemb:",
        description="Redis key prefix for cached embeddings",
    )

    # Circuit breaker
    circuit_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive provider failures before the circuit opens",
    )
    circuit_recovery_timeout: float = Field(
        default=60.0,
        ge=0,
        description="Seconds before an open circuit allows a trial call",
    )

    @property
    def cache_ttl_seconds(self) -> int:
        """Cache TTL in seconds."""
        return self.cache_ttl_hours * 3600
