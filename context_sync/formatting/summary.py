"""
Organization summary rendering.

Combines every cached analytics snapshot and content item of one
organization into a single overview document: data sources, post
performance totals and averages, and previews of the most recent posts.
"""

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from context_sync.formatting.formatter import (
    DEMOGRAPHIC_SECTIONS,
    render_date,
    render_number,
)
from context_sync.ingestion.schemas import ContentItem, RawSnapshot

RECENT_ITEM_LIMIT = 10
PREVIEW_CHARS = 300


@dataclass(frozen=True)
class SummaryInput:
    """Everything the summary is built from."""

    organization_id: str
    snapshots: list[RawSnapshot] = field(default_factory=list)
    items: list[ContentItem] = field(default_factory=list)
    organization_name: str | None = None

    def with_name(self, organization_name: str) -> "SummaryInput":
        return dataclasses.replace(self, organization_name=organization_name)


def _recency_key(item: ContentItem) -> tuple:
    if item.published_at is None:
        return (1, 0.0, item.external_id)
    return (0, -item.published_at.timestamp(), item.external_id)


def recent_items(items: Iterable[ContentItem], limit: int = RECENT_ITEM_LIMIT) -> list[ContentItem]:
    """
    Most recently published items.

    Newest first; undated items sort last and ties break on external id
    ascending, so the selection is deterministic.
    """
    return sorted(items, key=_recency_key)[:limit]


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """Clip text to ``limit`` characters, marking truncation with '...'."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _demographic_count(demographics: Mapping) -> int:
    return sum(
        len(demographics.get(key) or [])
        for key, *_ in DEMOGRAPHIC_SECTIONS
        if isinstance(demographics.get(key) or [], list)
    )


def _source_lines(snapshots: list[RawSnapshot]) -> list[str]:
    lines = [f"Analytics Data Sources: {len(snapshots)} dataset(s)", ""]
    for snapshot in sorted(snapshots, key=lambda s: s.content_type):
        data = snapshot.data
        lines.append(f"Data Type: {snapshot.content_type} ({snapshot.source_type})")

        followers = data.get("followers")
        if isinstance(followers, Mapping):
            lines.append(f"  - Total Followers: {render_number(followers.get('total'))}")
            lines.append(
                f"  - Recent Growth: {render_number(followers.get('currentPeriod'))} followers"
            )

        page_views = data.get("pageViews")
        if isinstance(page_views, Mapping):
            lines.append(f"  - Lifetime Page Views: {render_number(page_views.get('lifetime'))}")
            lines.append(
                f"  - Current Period Views: {render_number(page_views.get('currentPeriod'))}"
            )

        demographics = data.get("demographics")
        if isinstance(demographics, Mapping):
            lines.append(f"  - Demographic Data Points: {_demographic_count(demographics)}")

        lines.append("")
    return lines


def _performance_lines(items: list[ContentItem]) -> list[str]:
    count = len(items)
    likes = sum(i.metrics.likes for i in items)
    comments = sum(i.metrics.comments for i in items)
    shares = sum(i.metrics.shares for i in items)
    impressions = sum(i.metrics.impressions for i in items)
    avg_rate = sum(i.engagement_rate for i in items) / count

    lines = [
        "Post Performance Analysis:",
        f"- Total Posts Analyzed: {count}",
        f"- Total Likes: {likes}",
        f"- Total Comments: {comments}",
        f"- Total Shares: {shares}",
        f"- Total Impressions: {impressions}",
        f"- Average Engagement Rate: {avg_rate:.2f}%",
        f"- Average Likes per Post: {likes / count:.1f}",
        f"- Average Comments per Post: {comments / count:.1f}",
        "",
        "--- Recent Post Content ---",
        "",
    ]

    for idx, item in enumerate(recent_items(items), start=1):
        lines += [
            f"Post {idx} ({render_date(item.published_at)}):",
            f'"{preview(item.body) if item.body else "No content"}"',
            f"Engagement: {item.metrics.likes} likes, {item.metrics.comments} comments, "
            f"{item.metrics.shares} shares",
            "",
        ]
    return lines


def format_summary(summary: SummaryInput) -> str:
    """Render the organization summary document."""
    name = summary.organization_name or f"Organization {summary.organization_id}"
    lines = [f"Comprehensive Analytics Summary for {name}:", ""]

    if summary.snapshots:
        lines += _source_lines(list(summary.snapshots))

    if summary.items:
        lines += _performance_lines(list(summary.items))
    else:
        lines.append("Post Performance Analysis: no content items available")

    return "\n".join(lines).strip() + "\n"
