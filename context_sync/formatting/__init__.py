"""
Canonical text formatting for analytics snapshots, content items and
organization summaries.
"""

from context_sync.formatting.formatter import (
    format_aggregate_metrics,
    format_content,
    format_content_item,
    format_demographic_snapshot,
)
from context_sync.formatting.summary import SummaryInput, format_summary, recent_items

__all__ = [
    "SummaryInput",
    "format_aggregate_metrics",
    "format_content",
    "format_content_item",
    "format_demographic_snapshot",
    "format_summary",
    "recent_items",
]
