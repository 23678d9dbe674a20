"""
Freshness decisions for context records.

Every sync stage asks the same question of an identity's current record
and acts on the answer: generate it (missing), regenerate it (stale) or
leave it alone (fresh).
"""

from datetime import datetime, timedelta
from enum import Enum

from context_sync.context.schemas import EmbeddingRecord

DEFAULT_WINDOW = timedelta(hours=24)


class Freshness(str, Enum):
    MISSING = "missing"
    STALE = "stale"
    FRESH = "fresh"


def decide_freshness(
    existing: EmbeddingRecord | None,
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> Freshness:
    """
    Classify an identity's current record.

    A record without a vector is stale regardless of age, so failed
    embeddings are retried on the next run.

    Args:
        existing: Current record for the identity, if any
        now: Reference time (timezone-aware)
        window: Maximum age of a fresh record

    Returns:
        MISSING, STALE or FRESH
    """
    if existing is None:
        return Freshness.MISSING
    if existing.vector is None:
        return Freshness.STALE
    if now - existing.created_at < window:
        return Freshness.FRESH
    return Freshness.STALE
