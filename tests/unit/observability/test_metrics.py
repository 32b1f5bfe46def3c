"""Tests for Prometheus metrics."""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from dscache.observability import metrics as metrics_module
from dscache.observability.metrics import (
    MetricsRegistry,
    record_cache_hit,
    record_cache_miss,
    record_cache_operation,
)


@pytest.fixture
def registry(monkeypatch) -> CollectorRegistry:
    """Swap the global metrics registry for one backed by a fresh collector."""
    collector = CollectorRegistry()
    fresh = MetricsRegistry()
    fresh.initialize(collector)
    monkeypatch.setattr(metrics_module, "metrics_registry", fresh)
    return collector


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_initialize_is_idempotent(self) -> None:
        collector = CollectorRegistry()
        metrics = MetricsRegistry()

        metrics.initialize(collector)
        metrics.initialize(collector)

        assert metrics.cache_hits_total is not None
        assert b"dscache_cache_hits_total" in metrics.generate_latest()

    def test_disabled(self, monkeypatch) -> None:
        monkeypatch.setattr(metrics_module.settings, "enable_metrics", False)
        metrics = MetricsRegistry()

        metrics.initialize(CollectorRegistry())

        assert metrics.cache_hits_total is None
        assert metrics.generate_latest() == b"# Metrics disabled\n"


class TestRecorders:
    """Tests for the record_* helpers."""

    def test_hits_and_misses(self, registry) -> None:
        record_cache_hit("queries")
        record_cache_hit("keys", 3)
        record_cache_miss("keys", 2)
        record_cache_miss("keys", 0)

        def value(name: str, cache_type: str) -> float | None:
            return registry.get_sample_value(name, {"cache_type": cache_type})

        assert value("dscache_cache_hits_total", "queries") == 1
        assert value("dscache_cache_hits_total", "keys") == 3
        assert value("dscache_cache_misses_total", "keys") == 2

    def test_operation_duration(self, registry) -> None:
        record_cache_operation("get", 0.002, "redis")

        count = registry.get_sample_value(
            "dscache_cache_operation_duration_seconds_count",
            {"operation": "get", "cache_type": "redis"},
        )
        assert count == 1
