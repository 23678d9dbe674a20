"""
Organization context records and the synchronization pipeline.

This module provides:
- ContextSyncService: ingest, evaluate freshness, format, embed and store
- EmbeddingRecordRepository: atomic per-identity record storage
- decide_freshness: the single missing/stale/fresh decision
- Data model: ContentType, EntityIdentity, EmbeddingRecord, SyncRunResult
"""

from context_sync.context.config import SyncConfig
from context_sync.context.freshness import Freshness, decide_freshness
from context_sync.context.repository import EmbeddingRecordRepository
from context_sync.context.schemas import (
    ContentType,
    EmbeddingRecord,
    EntityIdentity,
    OrganizationContext,
    Outcome,
    StageCounts,
    SyncRunResult,
)
from context_sync.context.service import ContextSyncService, build_sync_service

__all__ = [
    "ContentType",
    "ContextSyncService",
    "EmbeddingRecord",
    "EmbeddingRecordRepository",
    "EntityIdentity",
    "Freshness",
    "OrganizationContext",
    "Outcome",
    "StageCounts",
    "SyncConfig",
    "SyncRunResult",
    "build_sync_service",
    "decide_freshness",
]
