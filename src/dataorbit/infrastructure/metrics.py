"""Prometheus metrics for the document store."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all document store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "dataorbit_operations_total",
            "Total number of store operations",
            ["operation", "status"],  # status: success, error
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "dataorbit_operation_latency_seconds",
            "Store operation latency in seconds",
            ["operation"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Persistence metrics
        self.saves_total = Counter(
            "dataorbit_saves_total",
            "Total full-file rewrites of the data file",
            ["status"],
            registry=self._registry,
        )

        self.save_latency_seconds = Histogram(
            "dataorbit_save_latency_seconds",
            "Encrypt-and-write latency in seconds",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.documents = Gauge(
            "dataorbit_documents",
            "Number of live documents per table",
            ["table"],
            registry=self._registry,
        )

        # Backup metrics
        self.backups_total = Counter(
            "dataorbit_backups_total",
            "Total backup copies taken",
            ["status"],
            registry=self._registry,
        )

        # Transaction metrics
        self.transactions_total = Counter(
            "dataorbit_transactions_total",
            "Total number of transactions",
            ["status"],  # commit, rollback
            registry=self._registry,
        )

        # Index metrics
        self.index_lookups_total = Counter(
            "dataorbit_index_lookups_total",
            "Queries answered from a hash index",
            ["table"],
            registry=self._registry,
        )

        self.info = Info(
            "dataorbit",
            "Document store information",
            registry=self._registry,
        )


# Default process-wide registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    if registry is not None or _metrics is None:
        _metrics = MetricsRegistry(registry)

    from dataorbit import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the default metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
