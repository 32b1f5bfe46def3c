"""Prometheus metrics for dscache.

Provides cache metrics:
- hits and misses per cache type ("keys" or "queries")
- per-store operation latency

Usage:
    from dscache.observability.metrics import record_cache_hit

    record_cache_hit("queries")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest

from dscache.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_operation_duration_seconds: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry or REGISTRY

        self.cache_hits_total = Counter(
            "dscache_cache_hits_total",
            "Cache hits",
            ["cache_type"],
            registry=self._registry,
        )

        self.cache_misses_total = Counter(
            "dscache_cache_misses_total",
            "Cache misses",
            ["cache_type"],
            registry=self._registry,
        )

        self.cache_operation_duration_seconds = Histogram(
            "dscache_cache_operation_duration_seconds",
            "Cache store operation latency in seconds",
            ["operation", "cache_type"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1),
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(cache_type: str, count: int = 1) -> None:
    """Record cache hits."""
    metrics = get_metrics()
    if metrics.cache_hits_total and count:
        metrics.cache_hits_total.labels(cache_type=cache_type).inc(count)


def record_cache_miss(cache_type: str, count: int = 1) -> None:
    """Record cache misses."""
    metrics = get_metrics()
    if metrics.cache_misses_total and count:
        metrics.cache_misses_total.labels(cache_type=cache_type).inc(count)


def record_cache_operation(operation: str, duration: float, cache_type: str) -> None:
    """Record cache store operation duration.

    Args:
        operation: Store operation (get, mget, set, mset, delete)
        duration: Operation duration in seconds
        cache_type: Store name (memory, redis)
    """
    metrics = get_metrics()
    if metrics.cache_operation_duration_seconds:
        metrics.cache_operation_duration_seconds.labels(
            operation=operation,
            cache_type=cache_type,
        ).observe(duration)
