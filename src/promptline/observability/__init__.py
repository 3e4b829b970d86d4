"""Observability module for logging and metrics.

This module provides:
- Structured logging with operation IDs
- Prometheus metrics for history operations
"""

from promptline.observability.logging import get_logger, setup_logging
from promptline.observability.metrics import MetricsCollector, get_metrics_collector

__all__ = [
    "setup_logging",
    "get_logger",
    "MetricsCollector",
    "get_metrics_collector",
]
