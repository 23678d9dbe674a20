"""
Error taxonomy for the synchronization pipeline.

Only IngestionError aborts an organization's run. The others are caught
at the smallest scope (per identity) and surface through SyncRunResult
counters.
"""


class ContextSyncError(Exception):
    """Base exception for context-sync failures."""


class IngestionError(ContextSyncError):
    """Upstream data could not be fetched, parsed, or cached."""


class FormattingError(ContextSyncError):
    """A payload could not be rendered as canonical text."""


class EmbeddingError(ContextSyncError):
    """The embedding provider failed or returned an unusable vector."""


class StoreError(ContextSyncError):
    """A persistence operation failed."""
