"""
Dependency injection for FastAPI endpoints.
"""

from typing import AsyncGenerator

import redis.asyncio as redis

from context_sync.config.settings import get_settings
from context_sync.context.config import SyncConfig
from context_sync.context.service import ContextSyncService, build_sync_service
from context_sync.ingestion.platform_client import HTTPPlatformClient
from context_sync.storage.database import Database

# Global instances (initialized on first request)
_database: Database | None = None
_redis_client: redis.Redis | None = None
_sync_service: ContextSyncService | None = None


def _get_or_create_redis() -> redis.Redis:
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def get_redis_client() -> AsyncGenerator[redis.Redis, None]:
    """Get Redis client for caching."""
    yield _get_or_create_redis()


async def get_database() -> Database:
    """Get the connected database (connects on first use)."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()
    return _database


async def get_sync_service() -> ContextSyncService:
    """
    Get the context sync service.

    Creates a singleton wired to PostgreSQL, Redis embedding cache and,
    when a gateway token is configured, the platform client.
    """
    global _sync_service

    if _sync_service is None:
        settings = get_settings()
        config = SyncConfig()
        platform_client = (
            HTTPPlatformClient(posts_count=config.posts_fetch_count)
            if settings.platform_configured
            else None
        )
        _sync_service = build_sync_service(
            await get_database(),
            redis_client=_get_or_create_redis(),
            platform_client=platform_client,
            config=config,
        )

    return _sync_service


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _redis_client, _sync_service

    _sync_service = None

    if _database is not None:
        await _database.close()
        _database = None

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
