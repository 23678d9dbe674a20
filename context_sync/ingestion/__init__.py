"""
Ingestion of raw organization data from the platform gateway.

This module provides:
- RawSnapshot / ContentItem: normalized raw data models
- HTTPPlatformClient: gateway client with retry
- SnapshotRepository / ContentItemRepository: cached raw data storage
"""

from context_sync.ingestion.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
)
from context_sync.ingestion.platform_client import HTTPPlatformClient, PlatformClient
from context_sync.ingestion.repository import ContentItemRepository, SnapshotRepository
from context_sync.ingestion.schemas import ContentItem, ContentMetrics, RawSnapshot

__all__ = [
    "ContentItem",
    "ContentItemRepository",
    "ContentMetrics",
    "HTTPClient",
    "HTTPClientError",
    "HTTPPlatformClient",
    "PlatformClient",
    "RateLimitError",
    "RawSnapshot",
    "RetryConfig",
    "SnapshotRepository",
]
