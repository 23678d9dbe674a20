"""
Command-line interface for context-sync.

Usage:
    context-sync init-db                 # Create tables
    context-sync sync ORG_ID             # Synchronize one organization
    context-sync context ORG_ID          # Show an organization's context
    context-sync serve                   # Run the API server
    context-sync health                  # Check service health
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click

from context_sync.config.settings import get_settings
from context_sync.observability.logging import setup_logging
from context_sync.observability.metrics import get_metrics


def _load_json_file(path: Path | None) -> Any:
    if path is None:
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Context Sync - organization analytics to embedded context records."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from context_sync.context.repository import EmbeddingRecordRepository
    from context_sync.embedding.config import EmbeddingConfig
    from context_sync.ingestion.repository import ContentItemRepository, SnapshotRepository
    from context_sync.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            await SnapshotRepository(db).create_table()
            await ContentItemRepository(db).create_table()
            await EmbeddingRecordRepository(
                db, dimensions=EmbeddingConfig().dimensions
            ).create_table()
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
@click.argument("organization_id")
@click.option("--name", "organization_name", default=None, help="Organization display name")
@click.option(
    "--analytics-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Analytics JSON payload (skips the platform fetch)",
)
@click.option(
    "--posts-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Posts JSON list (skips the platform fetch)",
)
def sync(
    organization_id: str,
    organization_name: str | None,
    analytics_file: Path | None,
    posts_file: Path | None,
) -> None:
    """Synchronize one organization's context records."""
    import redis.asyncio as redis

    from context_sync.context.config import SyncConfig
    from context_sync.context.service import build_sync_service
    from context_sync.ingestion.platform_client import HTTPPlatformClient
    from context_sync.storage.database import Database

    raw_aggregates = _load_json_file(analytics_file)
    raw_posts = _load_json_file(posts_file)

    async def run() -> int:
        settings = get_settings()
        config = SyncConfig()
        platform_client = (
            HTTPPlatformClient(posts_count=config.posts_fetch_count)
            if settings.platform_configured
            else None
        )
        redis_client = redis.from_url(
            str(settings.redis_url), encoding="utf-8", decode_responses=True
        )

        db = Database()
        await db.connect()
        try:
            service = build_sync_service(
                db,
                redis_client=redis_client,
                platform_client=platform_client,
                config=config,
            )
            result = await service.sync_organization(
                organization_id,
                raw_aggregates=raw_aggregates,
                raw_content_items=raw_posts,
                organization_name=organization_name,
            )
        finally:
            await db.close()
            await redis_client.aclose()

        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.ingestion_error is not None:
            click.echo(click.style(f"Ingestion failed: {result.ingestion_error}", fg="red"))
            return 1
        if result.timed_out:
            click.echo(click.style("Run timed out; remaining records sync next run", fg="yellow"))
            return 1
        return 0

    sys.exit(asyncio.run(run()))


@main.command()
@click.argument("organization_id")
@click.option("--limit", default=None, type=int, help="Number of top content items")
@click.option("--show-text", is_flag=True, help="Print each record's canonical text")
def context(organization_id: str, limit: int | None, show_text: bool) -> None:
    """Show an organization's current context records."""
    from context_sync.context.config import SyncConfig
    from context_sync.context.repository import EmbeddingRecordRepository
    from context_sync.ingestion.repository import ContentItemRepository
    from context_sync.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            records = await EmbeddingRecordRepository(db).list_by_organization(organization_id)
            top_items = await ContentItemRepository(db).top_by_engagement(
                organization_id, limit or SyncConfig().context_top_items
            )
        finally:
            await db.close()

        click.echo(f"\nContext for {organization_id}: {len(records)} record(s)")
        click.echo("-" * 60)
        for record in records:
            marker = "embedded" if record.has_embedding else "pending retry"
            click.echo(f"  {record.identity.key}  [{marker}]  {record.created_at.isoformat()}")
            if show_text:
                click.echo(record.canonical_text)

        click.echo(f"\nTop content items ({len(top_items)}):")
        click.echo("-" * 60)
        for idx, item in enumerate(top_items, start=1):
            click.echo(
                f"  {idx}. {item.external_id}  {item.engagement_rate:.2f}%  "
                f"({item.metrics.likes} likes, {item.metrics.comments} comments)"
            )

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        settings = get_settings()

        # Check Redis
        try:
            import redis.asyncio as redis
            client = redis.from_url(str(settings.redis_url))
            results["redis"] = bool(await client.ping())
            await client.aclose()
        except Exception as e:
            results["redis"] = False
            logger.error("Redis health check failed", error=str(e))

        # Check PostgreSQL
        try:
            from context_sync.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        results["embedding_configured"] = settings.embedding_configured
        results["platform_configured"] = settings.platform_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name == "postgres" and not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the context sync API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "context_sync.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
