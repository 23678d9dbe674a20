"""
Health check endpoint with infrastructure checks.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from context_sync import __version__
from context_sync.api.dependencies import get_database, get_redis_client
from context_sync.api.models import ComponentHealth, HealthResponse
from context_sync.config.settings import get_settings
from context_sync.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    healthy = await db.health_check()
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round(latency_ms, 2),
    )


async def _check_redis(redis_client) -> ComponentHealth:
    """Check Redis connectivity and measure latency."""
    start = time.perf_counter()
    try:
        await redis_client.ping()
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )
    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency_ms, 2))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the health of the service and its dependencies.",
)
async def health_check(
    db: Database = Depends(get_database),
    redis_client=Depends(get_redis_client),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: Redis is down (syncs work without the embedding cache)
    - healthy: all components operational
    """
    settings = get_settings()

    components = {
        "database": await _check_database(db),
        "redis": await _check_redis(redis_client),
    }

    if components["database"].status == "unhealthy":
        status = "unhealthy"
    elif components["redis"].status == "unhealthy":
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        embedding_configured=settings.embedding_configured,
        platform_configured=settings.platform_configured,
        components=components,
        version=__version__,
    )
