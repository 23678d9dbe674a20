"""Tests for the organization context endpoints."""

from context_sync.errors import StoreError


class TestGenerateRoute:
    """Tests for POST /embeddings/organization/{id}/generate."""

    def test_generate_without_body(self, client, mock_sync_service):
        resp = client.post("/embeddings/organization/org-42/generate")

        assert resp.status_code == 200
        data = resp.json()
        assert data["organization_id"] == "org-42"
        assert data["succeeded"] is True
        assert data["totals"]["created"] == 3
        assert data["totals"]["skipped_fresh"] == 1
        assert data["summary"]["updated"] == 1
        mock_sync_service.sync_organization.assert_awaited_once_with(
            "org-42",
            raw_aggregates=None,
            raw_content_items=None,
            organization_name=None,
        )

    def test_generate_with_supplied_data(
        self, client, mock_sync_service, analytics_payload, posts_payload
    ):
        resp = client.post(
            "/embeddings/organization/org-42/generate",
            json={
                "organization_name": "Acme",
                "analytics_data": analytics_payload,
                "posts_data": posts_payload,
            },
        )

        assert resp.status_code == 200
        kwargs = mock_sync_service.sync_organization.call_args.kwargs
        assert kwargs["organization_name"] == "Acme"
        assert kwargs["raw_aggregates"] == analytics_payload
        assert kwargs["raw_content_items"] == posts_payload

    def test_ingestion_failure_is_bad_gateway(
        self, client, mock_sync_service, run_result_factory
    ):
        mock_sync_service.sync_organization.return_value = run_result_factory(
            ingestion_error="HTTPClientError: Request failed with status 401"
        )

        resp = client.post("/embeddings/organization/org-42/generate")

        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("Ingestion failed: HTTPClientError")

    def test_timed_out_run_reports_partial_counts(
        self, client, mock_sync_service, run_result_factory
    ):
        mock_sync_service.sync_organization.return_value = run_result_factory(timed_out=True)

        resp = client.post("/embeddings/organization/org-42/generate")

        assert resp.status_code == 200
        data = resp.json()
        assert data["timed_out"] is True
        assert data["succeeded"] is False

    def test_invalid_posts_type(self, client):
        resp = client.post(
            "/embeddings/organization/org-42/generate",
            json={"posts_data": "not a list"},
        )

        assert resp.status_code == 422


class TestContextRoute:
    """Tests for GET /embeddings/organization/{id}/context."""

    def test_returns_records_and_top_items(self, client, mock_sync_service):
        resp = client.get("/embeddings/organization/org-42/context")

        assert resp.status_code == 200
        data = resp.json()
        assert data["organization_id"] == "org-42"
        assert data["total_records"] == 2

        summary, item = data["records"]
        assert summary["content_type"] == "organization_summary"
        assert summary["sub_id"] is None
        assert summary["has_embedding"] is True
        assert item["content_type"] == "content_item"
        assert item["sub_id"] == "urn:li:share:1"
        assert item["has_embedding"] is False

        top = data["top_content_items"][0]
        assert top["external_id"] == "urn:li:share:1"
        assert top["engagement_rate"] == 10.0
        mock_sync_service.get_context.assert_awaited_once_with("org-42", top_limit=None)

    def test_limit_is_forwarded(self, client, mock_sync_service):
        client.get("/embeddings/organization/org-42/context?limit=3")

        mock_sync_service.get_context.assert_awaited_once_with("org-42", top_limit=3)

    def test_limit_out_of_range(self, client):
        resp = client.get("/embeddings/organization/org-42/context?limit=0")

        assert resp.status_code == 422

    def test_store_error(self, client, mock_sync_service):
        mock_sync_service.get_context.side_effect = StoreError("connection lost")

        resp = client.get("/embeddings/organization/org-42/context")

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to get organization context"


class TestRoot:
    def test_root(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json()["service"] == "Context Sync API"
