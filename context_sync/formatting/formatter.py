"""
Canonical text rendering for embedding.

Each content type has one renderer that turns its payload into a
labelled, line-oriented document. Renderers are pure: the same payload
always yields byte-identical text, so a stored record's text can be
compared and regenerated safely.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from context_sync.errors import FormattingError
from context_sync.ingestion.schemas import ContentItem, RawSnapshot, as_count

# Page view breakdown keys, in render order
_LIFETIME_BREAKDOWN = (
    ("overviewPageViews", "Overview Page"),
    ("aboutPageViews", "About Page"),
    ("peoplePageViews", "People Page"),
    ("jobsPageViews", "Jobs Page"),
    ("careersPageViews", "Careers Page"),
    ("insightsPageViews", "Insights Page"),
    ("productsPageViews", "Products Page"),
    ("lifeAtPageViews", "Life At Page"),
    ("allDesktopPageViews", "Desktop Views (All Time)"),
    ("allMobilePageViews", "Mobile Views (All Time)"),
)

_RECENT_BREAKDOWN = (
    ("overviewPageViews", "Overview Page"),
    ("aboutPageViews", "About Page"),
    ("peoplePageViews", "People Page"),
    ("jobsPageViews", "Jobs Page"),
    ("careersPageViews", "Careers Page"),
    ("insightsPageViews", "Insights Page"),
    ("productsPageViews", "Products Page"),
    ("allDesktopPageViews", "Desktop Views"),
    ("allMobilePageViews", "Mobile Views"),
)

# (payload key, section title, entry label key, entry prefix)
DEMOGRAPHIC_SECTIONS = (
    ("countries", "Top Countries by Followers", "geo", "Country "),
    ("regions", "Top Regions by Followers", "geo", "Region "),
    ("industries", "Top Industries by Followers", "industry", "Industry "),
    ("functions", "Top Job Functions by Followers", "function", "Function "),
    ("seniorities", "Follower Seniority Levels", "seniority", "Seniority "),
    ("staffCountRanges", "Follower Company Sizes", "staffCountRange", ""),
)


def render_number(value: Any) -> str:
    """Render a count without locale formatting. Absent values are 0."""
    if value is None or value == "" or isinstance(value, bool):
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_date(value: datetime | None) -> str:
    """ISO calendar date, or "unknown"."""
    if value is None:
        return "unknown"
    return value.date().isoformat()


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _display_name(organization_name: str | None, organization_id: str) -> str:
    return organization_name or f"Organization {organization_id}"


def _follower_lines(followers: Mapping[str, Any]) -> list[str]:
    lines = [
        "Follower Metrics:",
        f"- Total Followers (ALL TIME): {render_number(followers.get('total'))}",
    ]
    if followers.get("currentPeriod") or followers.get("previousPeriod"):
        lines.append(f"- Recent Period: {render_number(followers.get('currentPeriod'))} followers")
        lines.append(
            f"- Previous Period: {render_number(followers.get('previousPeriod'))} followers"
        )
        if followers.get("changePercent") is not None:
            lines.append(f"- Growth Rate: {render_number(followers['changePercent'])}%")
    lines.append("")
    return lines


def _breakdown_lines(
    breakdown: Mapping[str, Any], keys: tuple[tuple[str, str], ...], suffix: str
) -> list[str]:
    return [
        f"- {label}: {render_number(breakdown[key])}{suffix}"
        for key, label in keys
        if breakdown.get(key)
    ]


def _page_view_lines(page_views: Mapping[str, Any]) -> list[str]:
    lines = [
        "Page View Metrics:",
        f"- Lifetime Page Views (ALL TIME): {render_number(page_views.get('lifetime'))}",
    ]

    lifetime = _section(page_views, "breakdown")
    if lifetime:
        lines += ["", "All-Time Page View Breakdown:"]
        lines += _breakdown_lines(lifetime, _LIFETIME_BREAKDOWN, " views")

    if page_views.get("currentPeriod") or page_views.get("previousPeriod"):
        lines += [
            "",
            "Recent Period Activity:",
            f"- Recent Period Views: {render_number(page_views.get('currentPeriod'))}",
            f"- Previous Period Views: {render_number(page_views.get('previousPeriod'))}",
            f"- Unique Visitors (Recent): {render_number(page_views.get('uniqueViewsCurrent'))}",
        ]

    recent = _section(page_views, "currentPeriodBreakdown")
    if recent:
        lines += ["", "Recent Period Page Breakdown:"]
        lines += _breakdown_lines(recent, _RECENT_BREAKDOWN, "")

    lines.append("")
    return lines


def _demographic_lines(demographics: Mapping[str, Any]) -> list[str]:
    lines = ["Follower Demographics:", ""]
    for key, title, label_key, prefix in DEMOGRAPHIC_SECTIONS:
        entries = demographics.get(key)
        if not isinstance(entries, list) or not entries:
            continue
        lines.append(f"{title}:")
        for idx, entry in enumerate(entries, start=1):
            if not isinstance(entry, Mapping):
                continue
            counts = _section(entry, "followerCounts")
            organic = as_count(counts.get("organicFollowerCount"))
            paid = as_count(counts.get("paidFollowerCount"))
            total = organic + paid
            lines.append(
                f"  {idx}. {prefix}{entry.get(label_key, 'unknown')}: "
                f"{render_number(total)} followers "
                f"({render_number(organic)} organic, {render_number(paid)} paid)"
            )
        lines.append("")
    return lines


def _date_range_line(snapshot: RawSnapshot) -> list[str]:
    if snapshot.start_date is None and snapshot.end_date is None:
        return []
    return [
        f"Data Range: {render_date(snapshot.start_date)} to {render_date(snapshot.end_date)}",
        "",
    ]


def _finish(lines: list[str]) -> str:
    return "\n".join(lines).strip() + "\n"


def format_aggregate_metrics(snapshot: RawSnapshot, organization_name: str | None = None) -> str:
    """Render an aggregate metrics snapshot (followers, page views, demographics)."""
    data = snapshot.data
    lines = [
        f"{_display_name(organization_name, snapshot.organization_id)} Analytics Summary:",
        "",
    ]
    lines += _date_range_line(snapshot)

    if _section(data, "followers"):
        lines += _follower_lines(_section(data, "followers"))
    if _section(data, "pageViews"):
        lines += _page_view_lines(_section(data, "pageViews"))
    if _section(data, "demographics"):
        lines += _demographic_lines(_section(data, "demographics"))
    if data.get("message"):
        lines.append(f"Notes: {data['message']}")

    return _finish(lines)


def format_demographic_snapshot(
    snapshot: RawSnapshot, organization_name: str | None = None
) -> str:
    """Render the demographic sections of a snapshot only."""
    lines = [
        f"{_display_name(organization_name, snapshot.organization_id)} Follower Demographics Snapshot:",
        "",
    ]
    lines += _date_range_line(snapshot)
    lines += _demographic_lines(_section(snapshot.data, "demographics"))
    return _finish(lines)


def format_content_item(item: ContentItem, organization_name: str | None = None) -> str:
    """
    Render one content item.

    The body is kept whole; an empty body leaves a metrics-only document.
    """
    metrics = item.metrics
    lines = [f"Post from {_display_name(organization_name, item.organization_id)}:", ""]

    if item.body.strip():
        lines += ["Post Content:", f'"{item.body}"', ""]

    lines += [
        "Engagement Metrics:",
        f"- Likes: {render_number(metrics.likes)}",
        f"- Comments: {render_number(metrics.comments)}",
        f"- Shares: {render_number(metrics.shares)}",
        f"- Impressions: {render_number(metrics.impressions)}",
        f"- Engagement Rate: {metrics.engagement_rate:.2f}%",
        f"- Total Engagements: {render_number(metrics.total_engagements)}",
        f"- Posted Date: {render_date(item.published_at)}",
        f"- Post ID: {item.external_id}",
    ]
    return _finish(lines)


def _format_summary(payload: Any, organization_name: str | None) -> str:
    # Imported here: summary builds on the helpers above
    from context_sync.formatting.summary import SummaryInput, format_summary

    if not isinstance(payload, SummaryInput):
        raise FormattingError(
            f"organization_summary expects SummaryInput, got {type(payload).__name__}"
        )
    if organization_name and not payload.organization_name:
        payload = payload.with_name(organization_name)
    return format_summary(payload)


_SNAPSHOT_RENDERERS: dict[str, Callable[[RawSnapshot, str | None], str]] = {
    "aggregate_metrics": format_aggregate_metrics,
    "demographic_snapshot": format_demographic_snapshot,
}


def format_content(content_type: Any, payload: Any, organization_name: str | None = None) -> str:
    """
    Render a payload as canonical text for its content type.

    Args:
        content_type: ContentType member or its string value
        payload: RawSnapshot, ContentItem or SummaryInput matching the type
        organization_name: Display name used in headers

    Returns:
        Canonical text

    Raises:
        FormattingError: Unknown content type or mismatched payload
    """
    kind = getattr(content_type, "value", content_type)

    if kind in _SNAPSHOT_RENDERERS:
        if not isinstance(payload, RawSnapshot):
            raise FormattingError(f"{kind} expects RawSnapshot, got {type(payload).__name__}")
        return _SNAPSHOT_RENDERERS[kind](payload, organization_name)

    if kind == "content_item":
        if not isinstance(payload, ContentItem):
            raise FormattingError(f"content_item expects ContentItem, got {type(payload).__name__}")
        return format_content_item(payload, organization_name)

    if kind == "organization_summary":
        return _format_summary(payload, organization_name)

    raise FormattingError(f"Unknown content type: {content_type!r}")
