"""Prometheus metrics for the key-value store.

Metrics are collected in-process only. Exposing them (for example with
``prometheus_client.start_http_server``) is left to the embedding
application; the store itself never opens a socket.
"""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all key-value store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Client operation metrics
        self.operations_total = Counter(
            "quickkv_operations_total",
            "Total number of client operations",
            ["operation", "status"],  # operation: get, set, get_many, set_many
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "quickkv_operation_latency_seconds",
            "Client operation latency in seconds",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0),
            registry=self._registry,
        )

        # Write metrics
        self.records_appended_total = Counter(
            "quickkv_records_appended_total",
            "Total records appended to the log",
            registry=self._registry,
        )

        self.bytes_written_total = Counter(
            "quickkv_bytes_written_total",
            "Total bytes appended to the log",
            registry=self._registry,
        )

        # Replay metrics
        self.records_replayed_total = Counter(
            "quickkv_records_replayed_total",
            "Total records replayed while opening",
            registry=self._registry,
        )

        self.replay_duration_seconds = Gauge(
            "quickkv_replay_duration_seconds",
            "Duration of the last replay in seconds",
            registry=self._registry,
        )

        self.torn_tails_total = Counter(
            "quickkv_torn_tails_total",
            "Incomplete trailing records truncated while opening",
            registry=self._registry,
        )

        # Cache metrics
        self.cache_keys = Gauge(
            "quickkv_cache_keys",
            "Number of distinct keys held in memory",
            ["path"],
            registry=self._registry,
        )

        # Lock metrics
        self.lock_wait_seconds = Histogram(
            "quickkv_lock_wait_seconds",
            "Time spent waiting for the reader-writer lock",
            ["mode"],  # shared, exclusive
            buckets=(0.00001, 0.0001, 0.001, 0.01, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Library info
        self.info = Info(
            "quickkv",
            "Key-value store information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the collector registry the metrics are registered in."""
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def get_metrics() -> MetricsRegistry:
    """Get the process-wide metrics registry, creating it on first use."""
    global _metrics
    if _metrics is None:
        from quickkv import __version__

        _metrics = MetricsRegistry()
        _metrics.info.info({"version": __version__})
    return _metrics
