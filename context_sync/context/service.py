"""
Organization context synchronization.

Runs the pipeline for one organization:

1. Ingest: fetch (or accept) raw analytics and posts, normalize and cache them
2. Aggregate sync: one record per cached analytics snapshot
3. Content item sync: one record per cached post, bounded concurrency
4. Summary sync: one overview record built from everything cached

Each identity is regenerated only when its record is missing or stale.
Only an ingestion failure aborts a run; everything else is counted per
identity in the returned SyncRunResult.
"""

import asyncio
import time
import weakref
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import asyncpg
import httpx
import redis.asyncio as redis
import structlog

from context_sync.context.config import SyncConfig
from context_sync.context.freshness import Freshness, decide_freshness
from context_sync.context.repository import EmbeddingRecordRepository
from context_sync.context.schemas import (
    ContentType,
    EmbeddingRecord,
    EntityIdentity,
    OrganizationContext,
    Outcome,
    StageCounts,
    SyncRunResult,
)
from context_sync.embedding.config import EmbeddingConfig
from context_sync.embedding.service import EmbeddingService
from context_sync.errors import FormattingError, IngestionError, StoreError
from context_sync.formatting import SummaryInput, format_content, recent_items
from context_sync.ingestion.http_client import HTTPClientError
from context_sync.ingestion.platform_client import PlatformClient
from context_sync.ingestion.repository import ContentItemRepository, SnapshotRepository
from context_sync.ingestion.schemas import ContentItem, RawSnapshot
from context_sync.observability.logging import log_context
from context_sync.observability.metrics import get_metrics
from context_sync.storage.database import Database

logger = structlog.get_logger(__name__)

# Failures that turn a run's ingestion stage into an IngestionError
_INGESTION_FAILURES = (
    HTTPClientError,
    httpx.HTTPError,
    ValueError,
    TypeError,
    OverflowError,
    StoreError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_payload_list(raw: Any, key: str) -> list:
    """Accept a bare list or an envelope object holding the list under ``key``."""
    if isinstance(raw, Mapping) and isinstance(raw.get(key), list):
        return raw[key]
    if isinstance(raw, list):
        return raw
    raise ValueError(f"Expected a list of {key}, got {type(raw).__name__}")


class ContextSyncService:
    """
    Orchestrates freshness-managed synchronization of organization context.

    All collaborators are injected; the service itself holds only the
    per-organization locks that serialize runs of the same organization.

    Usage:
        service = ContextSyncService(records, snapshots, content_items, embedder,
                                     platform_client=client)
        result = await service.sync_organization("org-1", organization_name="Acme")
        context = await service.get_context("org-1")
    """

    def __init__(
        self,
        records: EmbeddingRecordRepository,
        snapshots: SnapshotRepository,
        content_items: ContentItemRepository,
        embedder: EmbeddingService,
        platform_client: PlatformClient | None = None,
        config: SyncConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._records = records
        self._snapshots = snapshots
        self._content_items = content_items
        self._embedder = embedder
        self._platform_client = platform_client
        self._config = config or SyncConfig()
        self._clock = clock or _utc_now
        # Entries disappear once no run holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._metrics = get_metrics()

    @property
    def config(self) -> SyncConfig:
        return self._config

    def _lock_for(self, organization_id: str) -> asyncio.Lock:
        lock = self._locks.get(organization_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[organization_id] = lock
        return lock

    async def sync_organization(
        self,
        organization_id: str,
        raw_aggregates: Any = None,
        raw_content_items: Any = None,
        organization_name: str | None = None,
    ) -> SyncRunResult:
        """
        Synchronize one organization's context records.

        Args:
            organization_id: Organization to synchronize
            raw_aggregates: Analytics payload (or list of payloads); fetched
                from the platform when None
            raw_content_items: List of post payloads (or ``{"posts": [...]}``);
                fetched from the platform when None
            organization_name: Display name used in canonical text

        Returns:
            SyncRunResult with per-stage outcome counts
        """
        result = SyncRunResult(organization_id=organization_id)

        async with self._lock_for(organization_id):
            with log_context(organization_id=organization_id):
                return await self._run(
                    organization_id, raw_aggregates, raw_content_items, organization_name, result
                )

    async def _run(
        self,
        organization_id: str,
        raw_aggregates: Any,
        raw_content_items: Any,
        organization_name: str | None,
        result: SyncRunResult,
    ) -> SyncRunResult:
        start = time.perf_counter()
        try:
            try:
                snapshots, items = await self._ingest(
                    organization_id, raw_aggregates, raw_content_items
                )
            except IngestionError as e:
                result.ingestion_error = str(e)
                logger.error("Ingestion failed, run aborted", error=str(e))
                return result

            timeout = self._config.run_timeout_seconds or None
            try:
                async with asyncio.timeout(timeout):
                    await self._sync_stages(
                        organization_id, organization_name, snapshots, items, result
                    )
            except TimeoutError:
                result.timed_out = True
                logger.warning("Sync run timed out", timeout_seconds=timeout)
        finally:
            result.elapsed_seconds = time.perf_counter() - start
            self._record_run(result)

        return result

    def _record_run(self, result: SyncRunResult) -> None:
        if result.ingestion_error is not None:
            status = "ingestion_failed"
        elif result.timed_out:
            status = "timed_out"
        else:
            status = "success"
        self._metrics.record_sync_run(status, result.elapsed_seconds)
        logger.info(
            "Sync run finished",
            status=status,
            created=result.created,
            updated=result.updated,
            skipped_fresh=result.skipped_fresh,
            failed=result.failed,
            pending_retry=result.pending_retry,
            elapsed_seconds=round(result.elapsed_seconds, 3),
        )

    async def _ingest(
        self,
        organization_id: str,
        raw_aggregates: Any,
        raw_content_items: Any,
    ) -> tuple[list[RawSnapshot], list[ContentItem]]:
        """
        Fetch or accept raw data, cache it, and read back the cached state.

        Raises:
            IngestionError: On any fetch, parse or store failure
        """
        try:
            if raw_aggregates is None:
                raw_aggregates = await self._require_client().fetch_aggregate_metrics(
                    organization_id
                )
            if raw_content_items is None:
                raw_content_items = await self._require_client().fetch_content_items(
                    organization_id
                )

            collected_at = self._clock()
            aggregate_payloads = (
                raw_aggregates if isinstance(raw_aggregates, list) else [raw_aggregates]
            )
            snapshots = [
                RawSnapshot.from_analytics_payload(
                    organization_id, payload, collected_at=collected_at
                )
                for payload in aggregate_payloads
            ]
            items = [
                ContentItem.from_platform_payload(organization_id, payload)
                for payload in _as_payload_list(raw_content_items, "posts")
            ]

            for snapshot in snapshots:
                await self._snapshots.replace(snapshot)
            await self._content_items.upsert_many(items)

            stored_snapshots = await self._snapshots.list_by_organization(organization_id)
            stored_items = await self._content_items.list_by_organization(organization_id)
        except IngestionError:
            raise
        except _INGESTION_FAILURES as e:
            raise IngestionError(f"{type(e).__name__}: {e}") from e

        logger.info(
            "Ingestion complete",
            snapshots=len(stored_snapshots),
            content_items=len(stored_items),
        )
        return stored_snapshots, stored_items

    def _require_client(self) -> PlatformClient:
        if self._platform_client is None:
            raise IngestionError("No raw data supplied and no platform client configured")
        return self._platform_client

    async def _sync_stages(
        self,
        organization_id: str,
        organization_name: str | None,
        snapshots: list[RawSnapshot],
        items: list[ContentItem],
        result: SyncRunResult,
    ) -> None:
        # Aggregates
        for snapshot in snapshots:
            await self._sync_identity(
                EntityIdentity(organization_id, ContentType(snapshot.content_type)),
                payload=snapshot,
                organization_name=organization_name,
                metadata={
                    "source": snapshot.source_type,
                    "collected_at": snapshot.collected_at.isoformat(),
                },
                data_dates=(snapshot.start_date, snapshot.end_date),
                stage=result.aggregates,
            )

        # Content items
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def sync_item(item: ContentItem) -> None:
            async with semaphore:
                await self._sync_identity(
                    EntityIdentity.for_content_item(organization_id, item.external_id),
                    payload=item,
                    organization_name=organization_name,
                    metadata={
                        "source": "platform_post",
                        "external_id": item.external_id,
                        "engagement_rate": round(item.engagement_rate, 4),
                        "likes": item.metrics.likes,
                        "comments": item.metrics.comments,
                        "shares": item.metrics.shares,
                        "impressions": item.metrics.impressions,
                    },
                    data_dates=(item.published_at, item.published_at),
                    stage=result.content_items,
                )

        await asyncio.gather(*(sync_item(item) for item in items))

        # Summary
        dates = [i.published_at for i in items if i.published_at is not None]
        await self._sync_identity(
            EntityIdentity.for_summary(organization_id),
            payload=SummaryInput(
                organization_id=organization_id,
                snapshots=snapshots,
                items=items,
                organization_name=organization_name,
            ),
            organization_name=organization_name,
            metadata={
                "source": "organization_summary",
                "data_sources": sorted(s.content_type for s in snapshots),
                "items_analyzed": len(items),
                "item_ids": [i.external_id for i in recent_items(items)],
            },
            data_dates=(min(dates, default=None), max(dates, default=None)),
            stage=result.summary,
        )

    async def _sync_identity(
        self,
        identity: EntityIdentity,
        payload: Any,
        organization_name: str | None,
        metadata: dict[str, Any],
        data_dates: tuple[datetime | None, datetime | None],
        stage: StageCounts,
    ) -> None:
        """Evaluate one identity and regenerate its record when needed."""
        log = logger.bind(identity=identity.key)
        content_type = identity.content_type.value

        def finish(outcome: Outcome, pending_retry: bool = False) -> None:
            stage.record(outcome, pending_retry=pending_retry)
            self._metrics.record_identity_outcome(content_type, outcome.value)

        try:
            existing = await self._records.get(identity)
        except StoreError as e:
            log.warning("Record lookup failed", error=str(e))
            finish(Outcome.FAILED)
            return

        state = decide_freshness(existing, self._clock(), self._config.freshness_window)
        if state == Freshness.FRESH:
            finish(Outcome.SKIPPED_FRESH)
            return

        try:
            text = format_content(identity.content_type, payload, organization_name)
        except FormattingError as e:
            log.warning("Formatting failed", error=str(e))
            finish(Outcome.FAILED)
            return

        try:
            embedding = await self._embedder.embed(text)
            record = EmbeddingRecord(
                identity=identity,
                canonical_text=text,
                vector=embedding.vector,
                metadata=metadata,
                created_at=self._clock(),
                organization_name=organization_name,
                data_start_date=data_dates[0],
                data_end_date=data_dates[1],
            )
            await self._records.replace(record)
        except StoreError as e:
            log.warning("Record replace failed", error=str(e))
            finish(Outcome.FAILED)
            return
        except Exception:
            log.exception("Unexpected failure while regenerating record")
            finish(Outcome.FAILED)
            return

        if embedding.vector is None:
            log.warning(
                "Stored record without embedding",
                error=str(embedding.error) if embedding.error else None,
            )
            finish(Outcome.FAILED, pending_retry=True)
            return

        finish(Outcome.CREATED if state == Freshness.MISSING else Outcome.UPDATED)

    async def get_context(
        self, organization_id: str, top_limit: int | None = None
    ) -> OrganizationContext:
        """
        Read an organization's current records and best-performing content.

        A pure store read: nothing is embedded or regenerated.
        """
        records = await self._records.list_by_organization(organization_id)
        top_items = await self._content_items.top_by_engagement(
            organization_id, top_limit or self._config.context_top_items
        )
        return OrganizationContext(
            organization_id=organization_id,
            records=records,
            top_content_items=top_items,
        )


def build_sync_service(
    database: Database,
    redis_client: redis.Redis | None = None,
    platform_client: PlatformClient | None = None,
    config: SyncConfig | None = None,
    embedding_config: EmbeddingConfig | None = None,
) -> ContextSyncService:
    """
    Wire a ContextSyncService against PostgreSQL-backed repositories.

    Used by the API and CLI entry points; tests construct the service
    directly with in-memory collaborators.
    """
    embedding_config = embedding_config or EmbeddingConfig()
    return ContextSyncService(
        records=EmbeddingRecordRepository(database, dimensions=embedding_config.dimensions),
        snapshots=SnapshotRepository(database),
        content_items=ContentItemRepository(database),
        embedder=EmbeddingService(config=embedding_config, redis_client=redis_client),
        platform_client=platform_client,
        config=config,
    )
