"""
Pydantic models for API request/response validation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message")
    error_type: str | None = Field(default=None, description="Type of error")


class GenerateRequest(BaseModel):
    """Request body for an organization sync."""

    organization_name: str | None = Field(
        default=None,
        max_length=500,
        description="Display name used in the generated text",
    )
    analytics_data: dict[str, Any] | list[dict[str, Any]] | None = Field(
        default=None,
        description="Analytics payload; fetched from the platform when omitted",
    )
    posts_data: list[dict[str, Any]] | None = Field(
        default=None,
        description="Post payloads; fetched from the platform when omitted",
    )


class StageCountsModel(BaseModel):
    """Outcome tallies for one sync stage."""

    created: int = 0
    updated: int = 0
    skipped_fresh: int = 0
    failed: int = 0
    pending_retry: int = 0


class GenerateResponse(BaseModel):
    """Report of a completed sync run."""

    organization_id: str
    succeeded: bool
    aggregates: StageCountsModel
    content_items: StageCountsModel
    summary: StageCountsModel
    totals: StageCountsModel
    elapsed_seconds: float
    ingestion_error: str | None = None
    timed_out: bool = False


class ContextRecordItem(BaseModel):
    """One stored context record."""

    content: str = Field(..., description="Canonical text")
    content_type: str
    sub_id: str | None = None
    organization_name: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    data_start_date: datetime | None = None
    data_end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    has_embedding: bool = Field(..., description="False while the record awaits a retry")


class TopContentItem(BaseModel):
    """A high-engagement content item."""

    external_id: str
    body: str
    likes: int
    comments: int
    shares: int
    impressions: int
    engagement_rate: float
    published_at: datetime | None = None


class ContextResponse(BaseModel):
    """An organization's current context."""

    organization_id: str
    records: list[ContextRecordItem]
    top_content_items: list[TopContentItem]
    total_records: int


class ComponentHealth(BaseModel):
    """Health status of an infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency in milliseconds")
    details: dict[str, Any] | None = Field(default=None, description="Additional details")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Overall service status: healthy, degraded, or unhealthy")
    embedding_configured: bool = Field(default=False, description="Whether an OpenAI key is set")
    platform_configured: bool = Field(default=False, description="Whether the gateway token is set")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    version: str = Field(..., description="Service version")
