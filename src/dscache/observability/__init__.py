"""Observability for dscache.

Provides structured logging and Prometheus cache metrics.
"""

from dscache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_id_var,
)
from dscache.observability.metrics import (
    get_metrics,
    metrics_registry,
    record_cache_hit,
    record_cache_miss,
    record_cache_operation,
)

__all__ = [
    # Logging
    "configure_logging",
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "correlation_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "record_cache_hit",
    "record_cache_miss",
    "record_cache_operation",
]
