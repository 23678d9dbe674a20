"""Shared fixtures and in-memory collaborators for context tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from context_sync.context.config import SyncConfig
from context_sync.context.schemas import EmbeddingRecord, EntityIdentity
from context_sync.context.service import ContextSyncService
from context_sync.embedding.service import EmbeddingResult
from context_sync.errors import EmbeddingError, StoreError
from context_sync.ingestion.schemas import ContentItem, RawSnapshot


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryRecordStore:
    """
    EmbeddingRecordRepository double holding rows like the table does.

    ``replace`` deletes the identity's rows and appends the new one as one
    unit. Keys in ``fail_insert_keys`` fail after the delete, which is
    rolled back.
    """

    def __init__(self) -> None:
        self.rows: list[EmbeddingRecord] = []
        self.replace_calls = 0
        self.fail_keys: set[str] = set()
        self.fail_insert_keys: set[str] = set()

    @property
    def records(self) -> dict[EntityIdentity, EmbeddingRecord]:
        return {r.identity: r for r in self.rows}

    async def get(self, identity: EntityIdentity) -> EmbeddingRecord | None:
        return next((r for r in self.rows if r.identity == identity), None)

    async def replace(self, record: EmbeddingRecord) -> None:
        self.replace_calls += 1
        if record.identity.key in self.fail_keys:
            raise StoreError(f"Failed to replace {record.identity.key}")
        remaining = [r for r in self.rows if r.identity != record.identity]
        if record.identity.key in self.fail_insert_keys:
            raise StoreError(f"Insert failed for {record.identity.key}, delete rolled back")
        self.rows = remaining + [record]

    async def list_by_organization(self, organization_id: str) -> list[EmbeddingRecord]:
        return sorted(
            (r for r in self.rows if r.identity.organization_id == organization_id),
            key=lambda r: r.identity.key,
        )


class InMemorySnapshotStore:
    """SnapshotRepository double keyed by (organization, content type)."""

    def __init__(self) -> None:
        self.snapshots: dict[tuple[str, str], RawSnapshot] = {}

    async def replace(self, snapshot: RawSnapshot) -> None:
        self.snapshots[(snapshot.organization_id, snapshot.content_type)] = snapshot

    async def list_by_organization(self, organization_id: str) -> list[RawSnapshot]:
        return [
            s for (org, _), s in sorted(self.snapshots.items()) if org == organization_id
        ]


class InMemoryContentItemStore:
    """ContentItemRepository double keyed by (organization, external id)."""

    def __init__(self) -> None:
        self.items: dict[tuple[str, str], ContentItem] = {}

    async def upsert_many(self, items: list[ContentItem]) -> int:
        for item in items:
            self.items[(item.organization_id, item.external_id)] = item
        return len(items)

    async def list_by_organization(self, organization_id: str) -> list[ContentItem]:
        return [i for (org, _), i in sorted(self.items.items()) if org == organization_id]

    async def top_by_engagement(self, organization_id: str, limit: int = 10) -> list[ContentItem]:
        items = await self.list_by_organization(organization_id)
        return sorted(items, key=lambda i: -i.engagement_rate)[:limit]


class FakeEmbedder:
    """EmbeddingService double returning a fixed 3-dim vector."""

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: list[str] = []
        self.fail_when = lambda text: False
        self.raise_when = lambda text: False
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if self.raise_when(text):
            raise RuntimeError("unexpected embedder failure")
        if self.fail_when(text):
            return EmbeddingResult(vector=None, error=EmbeddingError("provider unavailable"))
        return EmbeddingResult(vector=[0.1, 0.2, 0.3])


class FakePlatformClient:
    """PlatformClient double serving fixed payloads."""

    def __init__(self, analytics: dict, posts: list[dict]) -> None:
        self.analytics = analytics
        self.posts = posts
        self.analytics_calls = 0
        self.posts_calls = 0
        self.error: Exception | None = None

    async def fetch_aggregate_metrics(self, organization_id: str) -> dict:
        self.analytics_calls += 1
        if self.error:
            raise self.error
        return self.analytics

    async def fetch_content_items(self, organization_id: str) -> list[dict]:
        self.posts_calls += 1
        return self.posts


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def item_store():
    return InMemoryContentItemStore()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def platform_client(analytics_payload, posts_payload):
    return FakePlatformClient(analytics_payload, posts_payload)


@pytest.fixture
def sync_config():
    return SyncConfig(
        freshness_window_hours=24,
        max_concurrency=5,
        run_timeout_seconds=0,
        context_top_items=10,
    )


@pytest.fixture
def service(record_store, snapshot_store, item_store, embedder, platform_client, sync_config, clock):
    """ContextSyncService wired to in-memory collaborators."""
    return ContextSyncService(
        records=record_store,
        snapshots=snapshot_store,
        content_items=item_store,
        embedder=embedder,
        platform_client=platform_client,
        config=sync_config,
        clock=clock,
    )

