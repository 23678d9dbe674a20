"""Database repositories for cached raw snapshots and content items."""

import logging

import asyncpg

from context_sync.ingestion.schemas import ContentItem, ContentMetrics, RawSnapshot
from context_sync.storage.codecs import dump_json, load_json
from context_sync.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_SNAPSHOTS_SQL = """
CREATE TABLE IF NOT EXISTS analytics_snapshots (
    organization_id TEXT NOT NULL,
    content_type    TEXT NOT NULL
        CHECK (content_type IN ('aggregate_metrics', 'demographic_snapshot')),
    source_type     TEXT NOT NULL,
    data            JSONB NOT NULL,
    start_date      TIMESTAMPTZ,
    end_date        TIMESTAMPTZ,
    collected_at    TIMESTAMPTZ NOT NULL,
    PRIMARY KEY (organization_id, content_type)
);
"""

_CREATE_CONTENT_ITEMS_SQL = """
CREATE TABLE IF NOT EXISTS content_items (
    organization_id  TEXT NOT NULL,
    external_id      TEXT NOT NULL,
    body             TEXT NOT NULL DEFAULT '',
    author           TEXT,
    published_at     TIMESTAMPTZ,
    like_count       INTEGER NOT NULL DEFAULT 0,
    comment_count    INTEGER NOT NULL DEFAULT 0,
    share_count      INTEGER NOT NULL DEFAULT 0,
    impression_count INTEGER NOT NULL DEFAULT 0,
    engagement_rate  REAL NOT NULL DEFAULT 0,
    raw_data         JSONB NOT NULL DEFAULT '{}',
    last_synced_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (organization_id, external_id)
);

CREATE INDEX IF NOT EXISTS idx_content_items_org_published
    ON content_items(organization_id, published_at DESC);
CREATE INDEX IF NOT EXISTS idx_content_items_org_engagement
    ON content_items(organization_id, engagement_rate DESC);
"""

_DELETE_SNAPSHOT_SQL = """
DELETE FROM analytics_snapshots
WHERE organization_id = $1 AND content_type = $2
"""

_INSERT_SNAPSHOT_SQL = """
INSERT INTO analytics_snapshots
    (organization_id, content_type, source_type, data, start_date, end_date, collected_at)
VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

_BULK_UPSERT_ITEMS_SQL = """
INSERT INTO content_items (
    external_id, organization_id, body, author, published_at,
    like_count, comment_count, share_count, impression_count,
    engagement_rate, raw_data
)
SELECT * FROM unnest(
    $1::text[], $2::text[], $3::text[], $4::text[], $5::timestamptz[],
    $6::integer[], $7::integer[], $8::integer[], $9::integer[],
    $10::real[], $11::jsonb[]
)
ON CONFLICT (organization_id, external_id) DO UPDATE SET
    body = EXCLUDED.body,
    author = EXCLUDED.author,
    published_at = EXCLUDED.published_at,
    like_count = EXCLUDED.like_count,
    comment_count = EXCLUDED.comment_count,
    share_count = EXCLUDED.share_count,
    impression_count = EXCLUDED.impression_count,
    engagement_rate = EXCLUDED.engagement_rate,
    raw_data = EXCLUDED.raw_data,
    last_synced_at = NOW()
"""

_ITEM_COLUMNS = """
    external_id, organization_id, body, author, published_at,
    like_count, comment_count, share_count, impression_count, raw_data
"""


def _record_to_snapshot(record: asyncpg.Record) -> RawSnapshot:
    """Convert an asyncpg Record to a RawSnapshot."""
    return RawSnapshot(
        organization_id=record["organization_id"],
        content_type=record["content_type"],
        source_type=record["source_type"],
        data=load_json(record["data"]) or {},
        start_date=record["start_date"],
        end_date=record["end_date"],
        collected_at=record["collected_at"],
    )


def _record_to_item(record: asyncpg.Record) -> ContentItem:
    """Convert an asyncpg Record to a ContentItem."""
    return ContentItem(
        organization_id=record["organization_id"],
        external_id=record["external_id"],
        body=record["body"] or "",
        author=record["author"],
        published_at=record["published_at"],
        metrics=ContentMetrics(
            likes=record["like_count"],
            comments=record["comment_count"],
            shares=record["share_count"],
            impressions=record["impression_count"],
        ),
        raw_data=load_json(record["raw_data"]) or {},
    )


class SnapshotRepository:
    """Storage for the latest analytics snapshot per organization and kind."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the analytics_snapshots table (idempotent)."""
        await self._db.execute(_CREATE_SNAPSHOTS_SQL)
        logger.info("Analytics snapshots table ensured")

    async def replace(self, snapshot: RawSnapshot) -> None:
        """Supersede the stored snapshot of the same organization and kind."""
        async with self._db.transaction() as conn:
            await conn.execute(
                _DELETE_SNAPSHOT_SQL, snapshot.organization_id, snapshot.content_type
            )
            await conn.execute(
                _INSERT_SNAPSHOT_SQL,
                snapshot.organization_id,
                snapshot.content_type,
                snapshot.source_type,
                dump_json(snapshot.data),
                snapshot.start_date,
                snapshot.end_date,
                snapshot.collected_at,
            )

    async def list_by_organization(self, organization_id: str) -> list[RawSnapshot]:
        """All cached snapshots for an organization, in content type order."""
        rows = await self._db.fetch(
            "SELECT * FROM analytics_snapshots WHERE organization_id = $1 ORDER BY content_type",
            organization_id,
        )
        return [_record_to_snapshot(r) for r in rows]


class ContentItemRepository:
    """Storage for normalized content items, keyed by organization and external id."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the content_items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_CONTENT_ITEMS_SQL)
        logger.info("Content items table ensured")

    async def upsert_many(self, items: list[ContentItem]) -> int:
        """
        Insert or update items in one statement.

        A post repeated within the batch is written once, the last copy
        winning, since one statement cannot update the same row twice.

        Returns:
            Number of distinct items written
        """
        if not items:
            return 0

        items = list({(i.organization_id, i.external_id): i for i in items}.values())

        await self._db.execute(
            _BULK_UPSERT_ITEMS_SQL,
            [i.external_id for i in items],
            [i.organization_id for i in items],
            [i.body for i in items],
            [i.author for i in items],
            [i.published_at for i in items],
            [i.metrics.likes for i in items],
            [i.metrics.comments for i in items],
            [i.metrics.shares for i in items],
            [i.metrics.impressions for i in items],
            [i.engagement_rate for i in items],
            [dump_json(i.raw_data) for i in items],
        )
        logger.info("Upserted %d content items", len(items))
        return len(items)

    async def list_by_organization(self, organization_id: str) -> list[ContentItem]:
        """Every stored item of an organization, most recent first."""
        rows = await self._db.fetch(
            f"""
            SELECT {_ITEM_COLUMNS} FROM content_items
            WHERE organization_id = $1
            ORDER BY published_at DESC NULLS LAST, external_id
            """,
            organization_id,
        )
        return [_record_to_item(r) for r in rows]

    async def top_by_engagement(
        self, organization_id: str, limit: int = 10
    ) -> list[ContentItem]:
        """Highest engagement-rate items of an organization."""
        rows = await self._db.fetch(
            f"""
            SELECT {_ITEM_COLUMNS} FROM content_items
            WHERE organization_id = $1
            ORDER BY engagement_rate DESC, published_at DESC NULLS LAST, external_id
            LIMIT $2
            """,
            organization_id,
            limit,
        )
        return [_record_to_item(r) for r in rows]
