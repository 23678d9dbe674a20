"""
Synchronization pipeline configuration.

Settings can be overridden via environment variables prefixed with SYNC_.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncConfig(BaseSettings):
    """Configuration for organization context synchronization."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    freshness_window_hours: float = Field(
        default=24.0,
        gt=0,
        description="Records younger than this with a vector are not regenerated",
    )
    max_concurrency: int = Field(
        default=5,
        ge=1,
        le=64,
        description="Content items processed concurrently in one run",
    )
    run_timeout_seconds: float = Field(
        default=600.0,
        ge=0,
        description="Deadline for the sync stages of one run (0 disables)",
    )
    context_top_items: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Top content items returned with an organization's context",
    )
    posts_fetch_count: int = Field(
        default=200,
        ge=1,
        description="Posts requested from the platform gateway per sync",
    )

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(hours=self.freshness_window_hours)
