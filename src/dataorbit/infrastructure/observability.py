"""One-call setup of logging, tracing and the metrics exporter."""

from __future__ import annotations

from dataorbit.infrastructure.config import ObservabilityConfig
from dataorbit.infrastructure.logging import get_logger, setup_logging
from dataorbit.infrastructure.metrics import MetricsRegistry, setup_metrics
from dataorbit.infrastructure.tracing import setup_tracing


def setup_observability(config: ObservabilityConfig) -> MetricsRegistry | None:
    """Configure process-wide observability from a store's settings.

    Tracing is only installed when an OTLP endpoint is configured, and the
    metrics HTTP exporter only when a port is.

    Returns:
        The exporter's registry wrapper, or None if no port is configured.
    """
    setup_logging(config)
    if config.otel_endpoint:
        setup_tracing(config)

    metrics = None
    if config.metrics_port is not None:
        metrics = setup_metrics(port=config.metrics_port)

    get_logger(__name__).info(
        "observability_configured",
        log_level=config.log_level,
        log_format=config.log_format,
        tracing=bool(config.otel_endpoint),
        metrics_port=config.metrics_port,
    )
    return metrics
