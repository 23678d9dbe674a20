"""
Raw data shapes handled by the ingestion stage.

RawSnapshot holds an organization's aggregate or demographic analytics
payload as received from the platform gateway. ContentItem is one
normalized post with its engagement metrics. Both are normalized from
the gateway's loosely-shaped JSON here so the rest of the pipeline only
sees well-typed models.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SnapshotKind = Literal["aggregate_metrics", "demographic_snapshot"]

# Upstream field fallbacks, in priority order
_BODY_FIELDS = ("fullText", "full_text", "textContent", "commentary", "post_content")
_ID_FIELDS = ("id", "post_id", "postId")
_TIMESTAMP_FIELDS = ("createdAt", "created_at", "posted_at", "publishedAt")


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an upstream timestamp.

    Accepts epoch milliseconds (the platform's native format), ISO-8601
    strings, or datetimes. Naive values are treated as UTC.

    Raises:
        ValueError: If the value is present but unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_count(value: Any) -> int:
    """Coerce an upstream counter to a non-negative int (absent -> 0)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


class ContentMetrics(BaseModel):
    """Engagement counters for one content item. Absent values are zero."""

    model_config = ConfigDict(frozen=True)

    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)
    impressions: int = Field(default=0, ge=0)

    @property
    def total_engagements(self) -> int:
        """Likes + comments + shares."""
        return self.likes + self.comments + self.shares

    @property
    def engagement_rate(self) -> float:
        """Engagements per impression, as a percentage (0 without impressions)."""
        if self.impressions <= 0:
            return 0.0
        return self.total_engagements / self.impressions * 100


class ContentItem(BaseModel):
    """
    One platform content unit (post).

    Identity is the external id; the content item store upserts by it
    on every sync.
    """

    organization_id: str = Field(..., min_length=1)
    external_id: str = Field(..., min_length=1, description="Platform post id / URN")
    body: str = Field(default="", description="Free-text body, may be empty")
    author: str | None = None
    published_at: datetime | None = None
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    raw_data: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def engagement_rate(self) -> float:
        return self.metrics.engagement_rate

    @classmethod
    def from_platform_payload(
        cls, organization_id: str, payload: Mapping[str, Any]
    ) -> "ContentItem":
        """
        Normalize a raw post from the platform gateway.

        Metrics prefer the social-actions block (``metrics``) and fall back
        to ``lifecycleState`` counters.

        Raises:
            ValueError: If the payload is not a mapping or has no id
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"Post payload must be an object, got {type(payload).__name__}")

        external_id = next(
            (str(payload[f]) for f in _ID_FIELDS if payload.get(f)), None
        )
        if external_id is None:
            raise ValueError("Post payload has no id")

        body = next(
            (payload[f] for f in _BODY_FIELDS if isinstance(payload.get(f), str) and payload[f]),
            "",
        )

        social = payload.get("metrics") or {}
        lifecycle = payload.get("lifecycleState") or {}
        if not isinstance(social, Mapping):
            social = {}
        if not isinstance(lifecycle, Mapping):
            lifecycle = {}

        metrics = ContentMetrics(
            likes=as_count(social.get("likes") or lifecycle.get("likeCount")),
            comments=as_count(social.get("comments") or lifecycle.get("commentCount")),
            shares=as_count(
                social.get("reposts") or social.get("shares") or lifecycle.get("shareCount")
            ),
            impressions=as_count(
                social.get("impressions") or lifecycle.get("impressionCount")
            ),
        )

        published_at = None
        for f in _TIMESTAMP_FIELDS:
            if payload.get(f) not in (None, ""):
                published_at = parse_timestamp(payload[f])
                break

        author = payload.get("author")

        return cls(
            organization_id=organization_id,
            external_id=external_id,
            body=body,
            author=str(author) if author else None,
            published_at=published_at,
            metrics=metrics,
            raw_data=dict(payload),
        )


class RawSnapshot(BaseModel):
    """
    Cached aggregate or demographic analytics payload for an organization.

    Immutable once written. The next fetch supersedes it (no merging):
    the snapshot store keeps one per (organization_id, content_type).
    """

    model_config = ConfigDict(frozen=True)

    organization_id: str = Field(..., min_length=1)
    content_type: SnapshotKind
    source_type: str = Field(default="dashboard_lifetime", description="Upstream analytics label")
    data: dict[str, Any] = Field(default_factory=dict)
    start_date: datetime | None = None
    end_date: datetime | None = None
    collected_at: datetime = Field(default_factory=_utc_now)

    @classmethod
    def from_analytics_payload(
        cls,
        organization_id: str,
        payload: Mapping[str, Any],
        source_type: str = "dashboard_lifetime",
        collected_at: datetime | None = None,
    ) -> "RawSnapshot":
        """
        Classify and wrap an upstream analytics payload.

        Payloads with follower or page-view figures are aggregate metrics
        (which may also carry demographics); payloads with only demographics
        are demographic snapshots.

        Raises:
            ValueError: If the payload is not an object or carries no
                recognizable analytics section
        """
        if not isinstance(payload, Mapping):
            raise ValueError(
                f"Analytics payload must be an object, got {type(payload).__name__}"
            )

        if payload.get("followers") or payload.get("pageViews"):
            kind: SnapshotKind = "aggregate_metrics"
        elif payload.get("demographics"):
            kind = "demographic_snapshot"
        else:
            raise ValueError(
                "Analytics payload has no followers, pageViews or demographics section"
            )

        date_range = payload.get("dateRange") or {}
        if not isinstance(date_range, Mapping):
            date_range = {}

        return cls(
            organization_id=organization_id,
            content_type=kind,
            source_type=source_type,
            data=dict(payload),
            start_date=parse_timestamp(date_range.get("start")),
            end_date=parse_timestamp(date_range.get("end")),
            collected_at=collected_at or _utc_now(),
        )
