"""
Prometheus metrics for monitoring the context sync pipeline.

Defines and exposes metrics for:
- Sync run outcomes and duration
- Per-identity outcomes by content type
- Embedding provider requests, latency and cache efficiency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from context_sync.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for sync duration histograms (in seconds)
SYNC_DURATION_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the context-sync pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_identity_outcome("content_item", "created")
        metrics.record_sync_run("success", duration=4.2)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Sync runs
        self.sync_runs = Counter(
            "context_sync_runs_total",
            "Total organization sync runs",
            ["status"],  # status: success, ingestion_failed, timed_out
        )

        self.sync_duration = Histogram(
            "context_sync_run_duration_seconds",
            "Wall-clock duration of an organization sync run",
            buckets=SYNC_DURATION_BUCKETS,
        )

        self.identity_outcomes = Counter(
            "context_sync_identity_outcomes_total",
            "Per-identity outcomes of sync runs",
            ["content_type", "outcome"],  # outcome: created, updated, skipped_fresh, failed
        )

        # Embedding provider
        self.embedding_requests = Counter(
            "context_sync_embedding_requests_total",
            "Embedding provider requests",
            ["status"],  # status: success, error, skipped_empty
        )

        self.embedding_latency = Histogram(
            "context_sync_embedding_latency_seconds",
            "Time to generate one embedding",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.embedding_cache_hits = Counter(
            "context_sync_embedding_cache_hits_total",
            "Total embedding cache hits",
        )

        self.embedding_cache_misses = Counter(
            "context_sync_embedding_cache_misses_total",
            "Total embedding cache misses",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_sync_run(self, status: str, duration: float | None = None) -> None:
        """
        Record a completed sync run.

        Args:
            status: Run status (success, ingestion_failed, timed_out)
            duration: Optional run duration in seconds
        """
        self.sync_runs.labels(status=status).inc()
        if duration is not None:
            self.sync_duration.observe(duration)

    def record_identity_outcome(self, content_type: str, outcome: str) -> None:
        """Record the outcome of processing one identity."""
        self.identity_outcomes.labels(content_type=content_type, outcome=outcome).inc()

    def record_embedding_request(
        self,
        status: str,
        latency: float | None = None,
    ) -> None:
        """
        Record an embedding provider request.

        Args:
            status: Request status (success, error, skipped_empty)
            latency: Optional latency in seconds
        """
        self.embedding_requests.labels(status=status).inc()
        if latency is not None:
            self.embedding_latency.observe(latency)

    def record_embedding_cache(self, hit: bool) -> None:
        """
        Record embedding cache hit or miss.

        Args:
            hit: True for cache hit, False for miss
        """
        if hit:
            self.embedding_cache_hits.inc()
        else:
            self.embedding_cache_misses.inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
