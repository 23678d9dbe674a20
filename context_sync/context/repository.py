"""
Repository for embedded context records (PostgreSQL + pgvector).

One row per logical identity. Replacement deletes and inserts inside a
single transaction, so readers see either the previous record or the
new one, never both and never neither.
"""

import logging
from typing import Any

import asyncpg

from context_sync.context.schemas import ContentType, EmbeddingRecord, EntityIdentity
from context_sync.errors import StoreError
from context_sync.storage.codecs import dump_json, load_json, parse_vector, vector_literal
from context_sync.storage.database import Database

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 1536

# Errors from the driver or the connection itself
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_CREATE_TABLE_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;

CREATE TABLE IF NOT EXISTS context_embeddings (
    id                BIGSERIAL PRIMARY KEY,
    organization_id   TEXT NOT NULL,
    organization_name TEXT,
    content_type      TEXT NOT NULL CHECK (content_type IN (
        'aggregate_metrics', 'demographic_snapshot',
        'content_item', 'organization_summary'
    )),
    sub_id            TEXT,
    content           TEXT NOT NULL,
    embedding         vector({dimensions}),
    metadata          JSONB NOT NULL DEFAULT '{{}}',
    data_start_date   TIMESTAMPTZ,
    data_end_date     TIMESTAMPTZ,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_context_embeddings_identity
    ON context_embeddings(organization_id, content_type, COALESCE(sub_id, ''));
CREATE INDEX IF NOT EXISTS idx_context_embeddings_org_updated
    ON context_embeddings(organization_id, updated_at DESC);
"""

_IDENTITY_WHERE = """
organization_id = $1 AND content_type = $2 AND sub_id IS NOT DISTINCT FROM $3
"""

_DELETE_SQL = f"DELETE FROM context_embeddings WHERE {_IDENTITY_WHERE}"

_INSERT_SQL = """
INSERT INTO context_embeddings (
    organization_id, content_type, sub_id, organization_name, content,
    embedding, metadata, data_start_date, data_end_date, created_at, updated_at
)
VALUES ($1, $2, $3, $4, $5, $6::text::vector, $7, $8, $9, $10, NOW())
"""

_SELECT_COLUMNS = """
organization_id, content_type, sub_id, organization_name, content,
embedding::text AS embedding, metadata, data_start_date, data_end_date,
created_at, updated_at
"""


def _record_to_embedding_record(record: asyncpg.Record) -> EmbeddingRecord:
    """Convert an asyncpg Record to an EmbeddingRecord."""
    return EmbeddingRecord(
        identity=EntityIdentity(
            organization_id=record["organization_id"],
            content_type=ContentType(record["content_type"]),
            sub_id=record["sub_id"],
        ),
        canonical_text=record["content"],
        vector=parse_vector(record["embedding"]),
        metadata=load_json(record["metadata"]) or {},
        created_at=record["created_at"],
        organization_name=record["organization_name"],
        data_start_date=record["data_start_date"],
        data_end_date=record["data_end_date"],
        updated_at=record["updated_at"],
    )


def _identity_args(identity: EntityIdentity) -> tuple[Any, ...]:
    return (identity.organization_id, identity.content_type.value, identity.sub_id)


class EmbeddingRecordRepository:
    """
    Storage for context records.

    Usage:
        repo = EmbeddingRecordRepository(database)
        await repo.create_table()
        await repo.replace(record)
        records = await repo.list_by_organization("org-1")
    """

    def __init__(self, database: Database, dimensions: int = DEFAULT_DIMENSIONS) -> None:
        self._db = database
        self._dimensions = dimensions

    async def create_table(self) -> None:
        """Create the pgvector extension, table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL.format(dimensions=self._dimensions))
        logger.info("Context embeddings table ensured (dimensions=%d)", self._dimensions)

    async def replace(self, record: EmbeddingRecord) -> None:
        """
        Atomically swap the record stored for ``record.identity``.

        Raises:
            StoreError: If the delete or insert fails (the transaction is
                rolled back and the previous record survives)
        """
        identity = record.identity
        try:
            async with self._db.transaction() as conn:
                await conn.execute(_DELETE_SQL, *_identity_args(identity))
                await conn.execute(
                    _INSERT_SQL,
                    *_identity_args(identity),
                    record.organization_name,
                    record.canonical_text,
                    vector_literal(record.vector),
                    dump_json(record.metadata),
                    record.data_start_date,
                    record.data_end_date,
                    record.created_at,
                )
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to replace {identity.key}: {e}") from e

    async def get(self, identity: EntityIdentity) -> EmbeddingRecord | None:
        """
        Fetch the current record for an identity.

        Raises:
            StoreError: On database failure
        """
        try:
            row = await self._db.fetchrow(
                f"SELECT {_SELECT_COLUMNS} FROM context_embeddings WHERE {_IDENTITY_WHERE}",
                *_identity_args(identity),
            )
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to read {identity.key}: {e}") from e
        return _record_to_embedding_record(row) if row else None

    async def list_by_organization(self, organization_id: str) -> list[EmbeddingRecord]:
        """All records of an organization, most recently written first."""
        try:
            rows = await self._db.fetch(
                f"""
                SELECT {_SELECT_COLUMNS} FROM context_embeddings
                WHERE organization_id = $1
                ORDER BY updated_at DESC, content_type, sub_id NULLS FIRST
                """,
                organization_id,
            )
        except _DB_ERRORS as e:
            raise StoreError(f"Failed to list records of {organization_id}: {e}") from e
        return [_record_to_embedding_record(r) for r in rows]
