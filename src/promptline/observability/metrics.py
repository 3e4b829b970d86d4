"""Prometheus metrics for document history operations.

This module provides counters and latency histograms for the operations
exposed by the history service.
"""

from typing import Optional

from prometheus_client import Counter, Histogram, generate_latest

history_operations_total = Counter(
    "history_operations_total",
    "Total number of history operations",
    labelnames=["operation", "status"],
)

history_operation_duration_seconds = Histogram(
    "history_operation_duration_seconds",
    "History operation duration in seconds",
    labelnames=["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)


class MetricsCollector:
    """Collects and exposes Prometheus metrics for history operations."""

    def record_operation(self, operation: str, status: str, duration_seconds: float) -> None:
        """Record one completed or failed history operation.

        Args:
            operation: Operation name (create_revision, merge_branch, ...)
            status: "success" or the error code of the failure
            duration_seconds: Operation duration in seconds

        Example:
            >>> collector = get_metrics_collector()
            >>> collector.record_operation("rollback", "success", 0.004)
        """
        history_operations_total.labels(operation=operation, status=status).inc()
        history_operation_duration_seconds.labels(operation=operation).observe(
            duration_seconds
        )

    def generate_metrics(self) -> bytes:
        """Generate Prometheus metrics in text format.

        Returns:
            Metrics in Prometheus exposition format
        """
        return generate_latest()


# Singleton instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global MetricsCollector instance.

    Returns:
        Singleton MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector
