"""Tests for EmbeddingRecordRepository SQL and parameter passing."""

import json
from datetime import datetime, timezone

import asyncpg
import pytest

from context_sync.context.repository import EmbeddingRecordRepository
from context_sync.context.schemas import ContentType, EmbeddingRecord, EntityIdentity
from context_sync.errors import StoreError

CREATED = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(mock_database):
    return EmbeddingRecordRepository(mock_database)


def _row(**overrides) -> dict:
    row = {
        "organization_id": "org-42",
        "content_type": "content_item",
        "sub_id": "p1",
        "organization_name": "Acme",
        "content": "Post from Acme:",
        "embedding": "[0.1,0.2,0.3]",
        "metadata": json.dumps({"likes": 4}),
        "data_start_date": None,
        "data_end_date": None,
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    row.update(overrides)
    return row


class TestCreateTable:
    """Tests for create_table DDL."""

    @pytest.mark.asyncio
    async def test_ddl(self, repo, mock_database):
        await repo.create_table()

        sql = mock_database.execute.call_args[0][0]
        assert "CREATE EXTENSION IF NOT EXISTS vector" in sql
        assert "vector(1536)" in sql
        assert "COALESCE(sub_id, '')" in sql
        assert "DEFAULT '{}'" in sql

    @pytest.mark.asyncio
    async def test_custom_dimensions(self, mock_database):
        await EmbeddingRecordRepository(mock_database, dimensions=3).create_table()

        assert "vector(3)" in mock_database.execute.call_args[0][0]


class TestReplace:
    """Tests for the transactional delete + insert."""

    @pytest.mark.asyncio
    async def test_delete_then_insert_in_one_transaction(self, repo, mock_database):
        record = EmbeddingRecord(
            identity=EntityIdentity.for_content_item("org-42", "p1"),
            canonical_text="Post from Acme:",
            vector=[0.1, 0.2],
            metadata={"likes": 4, "engagement_rate": 1.5},
            created_at=CREATED,
            organization_name="Acme",
        )

        await repo.replace(record)

        mock_database.transaction.assert_called_once()
        delete_call, insert_call = mock_database.conn.execute.call_args_list
        assert delete_call[0][0].startswith("DELETE FROM context_embeddings")
        assert "IS NOT DISTINCT FROM $3" in delete_call[0][0]
        assert delete_call[0][1:] == ("org-42", "content_item", "p1")

        args = insert_call[0]
        assert "INSERT INTO context_embeddings" in args[0]
        assert args[1:4] == ("org-42", "content_item", "p1")
        assert args[4] == "Acme"
        assert args[5] == "Post from Acme:"
        assert args[6] == "[0.1,0.2]"
        assert json.loads(args[7]) == {"engagement_rate": 1.5, "likes": 4}
        assert args[10] == CREATED

    @pytest.mark.asyncio
    async def test_absent_sub_id_and_null_vector(self, repo, mock_database):
        record = EmbeddingRecord(
            identity=EntityIdentity.for_summary("org-42"),
            canonical_text="summary",
            vector=None,
        )

        await repo.replace(record)

        delete_call, insert_call = mock_database.conn.execute.call_args_list
        assert delete_call[0][3] is None
        assert insert_call[0][6] is None

    @pytest.mark.asyncio
    async def test_database_error_wrapped(self, repo, mock_database):
        mock_database.conn.execute.side_effect = asyncpg.InterfaceError("connection closed")
        record = EmbeddingRecord(
            identity=EntityIdentity.for_summary("org-42"), canonical_text="summary"
        )

        with pytest.raises(StoreError, match="org-42:organization_summary"):
            await repo.replace(record)


class TestReads:
    """Tests for get and list_by_organization."""

    @pytest.mark.asyncio
    async def test_get_parses_row(self, repo, mock_database):
        mock_database.fetchrow.return_value = _row()

        record = await repo.get(EntityIdentity.for_content_item("org-42", "p1"))

        assert record.identity == EntityIdentity("org-42", ContentType.CONTENT_ITEM, "p1")
        assert record.vector == [0.1, 0.2, 0.3]
        assert record.metadata == {"likes": 4}
        assert record.has_embedding
        args = mock_database.fetchrow.call_args[0]
        assert "sub_id IS NOT DISTINCT FROM $3" in args[0]
        assert args[1:] == ("org-42", "content_item", "p1")

    @pytest.mark.asyncio
    async def test_get_missing(self, repo, mock_database):
        mock_database.fetchrow.return_value = None

        assert await repo.get(EntityIdentity.for_summary("org-42")) is None

    @pytest.mark.asyncio
    async def test_null_embedding(self, repo, mock_database):
        mock_database.fetchrow.return_value = _row(embedding=None, metadata={})

        record = await repo.get(EntityIdentity.for_content_item("org-42", "p1"))

        assert record.vector is None
        assert not record.has_embedding

    @pytest.mark.asyncio
    async def test_list_by_organization(self, repo, mock_database):
        mock_database.fetch.return_value = [
            _row(),
            _row(content_type="organization_summary", sub_id=None),
        ]

        records = await repo.list_by_organization("org-42")

        assert [r.identity.key for r in records] == [
            "org-42:content_item:p1",
            "org-42:organization_summary",
        ]
        sql = mock_database.fetch.call_args[0][0]
        assert "ORDER BY updated_at DESC" in sql

    @pytest.mark.asyncio
    async def test_read_error_wrapped(self, repo, mock_database):
        mock_database.fetch.side_effect = asyncpg.InterfaceError("pool closed")

        with pytest.raises(StoreError):
            await repo.list_by_organization("org-42")
