"""Observability layer - logging and metrics."""

from context_sync.observability.logging import log_context, setup_logging
from context_sync.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "log_context", "MetricsCollector", "get_metrics"]
