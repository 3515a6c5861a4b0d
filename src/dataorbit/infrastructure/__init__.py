"""Infrastructure layer - cross-cutting concerns."""

from dataorbit.infrastructure.config import (
    BackupPolicy,
    FieldSchema,
    ObservabilityConfig,
    StoreConfig,
    TableConfig,
    load_config,
)
from dataorbit.infrastructure.logging import get_logger, redact_secrets, setup_logging
from dataorbit.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from dataorbit.infrastructure.tracing import setup_tracing, span_attributes, trace_span
from dataorbit.infrastructure.observability import setup_observability

__all__ = [
    "BackupPolicy",
    "FieldSchema",
    "ObservabilityConfig",
    "StoreConfig",
    "TableConfig",
    "load_config",
    "setup_logging",
    "redact_secrets",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "span_attributes",
    "trace_span",
    "setup_observability",
]
