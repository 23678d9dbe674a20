"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from context_sync.api.app import create_app
from context_sync.api.auth import verify_api_key
from context_sync.api.dependencies import get_database, get_redis_client, get_sync_service
from context_sync.context.schemas import (
    EmbeddingRecord,
    EntityIdentity,
    OrganizationContext,
    StageCounts,
    SyncRunResult,
)
from context_sync.ingestion.schemas import ContentItem, ContentMetrics

CREATED = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_run_result(**overrides) -> SyncRunResult:
    """A completed run: two aggregates created, one item fresh, summary updated."""
    result = SyncRunResult(
        organization_id="org-42",
        aggregates=StageCounts(created=1),
        content_items=StageCounts(created=2, skipped_fresh=1),
        summary=StageCounts(updated=1),
        elapsed_seconds=0.25,
    )
    for name, value in overrides.items():
        setattr(result, name, value)
    return result


@pytest.fixture
def run_result_factory():
    return make_run_result


@pytest.fixture
def organization_context() -> OrganizationContext:
    """Context with one embedded summary, one pending item and one top post."""
    return OrganizationContext(
        organization_id="org-42",
        records=[
            EmbeddingRecord(
                identity=EntityIdentity.for_summary("org-42"),
                canonical_text="Comprehensive Analytics Summary for Acme:\n",
                vector=[0.1, 0.2, 0.3],
                metadata={"source": "comprehensive_summary"},
                created_at=CREATED,
                organization_name="Acme",
                updated_at=CREATED,
            ),
            EmbeddingRecord(
                identity=EntityIdentity.for_content_item("org-42", "urn:li:share:1"),
                canonical_text="Post from Acme:\n",
                vector=None,
                created_at=CREATED,
                organization_name="Acme",
            ),
        ],
        top_content_items=[
            ContentItem(
                organization_id="org-42",
                external_id="urn:li:share:1",
                body="Launch day",
                published_at=CREATED,
                metrics=ContentMetrics(likes=1, comments=1, shares=1, impressions=30),
            )
        ],
    )


@pytest.fixture
def mock_sync_service(organization_context):
    """Mock ContextSyncService."""
    service = AsyncMock()
    service.sync_organization = AsyncMock(return_value=make_run_result())
    service.get_context = AsyncMock(return_value=organization_context)
    return service


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_redis():
    redis_mock = AsyncMock()
    redis_mock.ping = AsyncMock(return_value=True)
    return redis_mock


@pytest.fixture
def app(mock_sync_service, mock_db, mock_redis):
    """Application with every infrastructure dependency overridden."""
    app = create_app()
    app.dependency_overrides[verify_api_key] = lambda: "test-key"
    app.dependency_overrides[get_sync_service] = lambda: mock_sync_service
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """FastAPI TestClient with dependency overrides."""
    with TestClient(app) as c:
        yield c
