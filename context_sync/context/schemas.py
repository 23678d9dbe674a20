"""
Data model for embedded context records and sync run reports.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from context_sync.ingestion.schemas import ContentItem


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContentType(str, Enum):
    """Kinds of logical entities that get an embedded record."""

    AGGREGATE_METRICS = "aggregate_metrics"
    DEMOGRAPHIC_SNAPSHOT = "demographic_snapshot"
    CONTENT_ITEM = "content_item"
    ORGANIZATION_SUMMARY = "organization_summary"


class Outcome(str, Enum):
    """What a sync run did with one identity."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_FRESH = "skipped_fresh"
    FAILED = "failed"


@dataclass(frozen=True)
class EntityIdentity:
    """
    Logical identity of a context record.

    ``sub_id`` is the external content id for content items and must be
    absent for every other content type. At most one record exists per
    identity.
    """

    organization_id: str
    content_type: ContentType
    sub_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "content_type", ContentType(self.content_type))
        if not self.organization_id:
            raise ValueError("organization_id is required")
        if self.content_type == ContentType.CONTENT_ITEM:
            if not self.sub_id:
                raise ValueError("content_item identities require a sub_id")
        elif self.sub_id is not None:
            raise ValueError(f"{self.content_type.value} identities cannot have a sub_id")

    @classmethod
    def for_content_item(cls, organization_id: str, external_id: str) -> "EntityIdentity":
        return cls(organization_id, ContentType.CONTENT_ITEM, external_id)

    @classmethod
    def for_summary(cls, organization_id: str) -> "EntityIdentity":
        return cls(organization_id, ContentType.ORGANIZATION_SUMMARY)

    @property
    def key(self) -> str:
        """Stable string form, e.g. ``org-1:content_item:post-9``."""
        base = f"{self.organization_id}:{self.content_type.value}"
        return f"{base}:{self.sub_id}" if self.sub_id is not None else base


@dataclass
class EmbeddingRecord:
    """
    Persisted unit: canonical text, its vector and provenance metadata.

    A null vector means the text was formatted but not yet embedded; the
    record is valid and will be regenerated on the next run.
    """

    identity: EntityIdentity
    canonical_text: str
    vector: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)
    organization_name: str | None = None
    data_start_date: datetime | None = None
    data_end_date: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_embedding(self) -> bool:
        return self.vector is not None


@dataclass
class StageCounts:
    """Outcome tallies for one sync stage."""

    created: int = 0
    updated: int = 0
    skipped_fresh: int = 0
    failed: int = 0
    pending_retry: int = 0

    def record(self, outcome: Outcome, pending_retry: bool = False) -> None:
        if outcome == Outcome.CREATED:
            self.created += 1
        elif outcome == Outcome.UPDATED:
            self.updated += 1
        elif outcome == Outcome.SKIPPED_FRESH:
            self.skipped_fresh += 1
        else:
            self.failed += 1
        if pending_retry:
            self.pending_retry += 1

    @property
    def processed(self) -> int:
        """Identities evaluated (pending_retry overlaps failed)."""
        return self.created + self.updated + self.skipped_fresh + self.failed

    def to_dict(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "skipped_fresh": self.skipped_fresh,
            "failed": self.failed,
            "pending_retry": self.pending_retry,
        }


@dataclass
class SyncRunResult:
    """Report of one organization sync run. Never persisted."""

    organization_id: str
    aggregates: StageCounts = field(default_factory=StageCounts)
    content_items: StageCounts = field(default_factory=StageCounts)
    summary: StageCounts = field(default_factory=StageCounts)
    elapsed_seconds: float = 0.0
    ingestion_error: str | None = None
    timed_out: bool = False

    def _stages(self) -> tuple[StageCounts, StageCounts, StageCounts]:
        return (self.aggregates, self.content_items, self.summary)

    @property
    def created(self) -> int:
        return sum(s.created for s in self._stages())

    @property
    def updated(self) -> int:
        return sum(s.updated for s in self._stages())

    @property
    def skipped_fresh(self) -> int:
        return sum(s.skipped_fresh for s in self._stages())

    @property
    def failed(self) -> int:
        return sum(s.failed for s in self._stages())

    @property
    def pending_retry(self) -> int:
        return sum(s.pending_retry for s in self._stages())

    @property
    def succeeded(self) -> bool:
        """True when ingestion worked and the run finished within its deadline."""
        return self.ingestion_error is None and not self.timed_out

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "succeeded": self.succeeded,
            "aggregates": self.aggregates.to_dict(),
            "content_items": self.content_items.to_dict(),
            "summary": self.summary.to_dict(),
            "totals": {
                "created": self.created,
                "updated": self.updated,
                "skipped_fresh": self.skipped_fresh,
                "failed": self.failed,
                "pending_retry": self.pending_retry,
            },
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "ingestion_error": self.ingestion_error,
            "timed_out": self.timed_out,
        }


@dataclass
class OrganizationContext:
    """What a downstream assistant reads for one organization."""

    organization_id: str
    records: list[EmbeddingRecord] = field(default_factory=list)
    top_content_items: list[ContentItem] = field(default_factory=list)
