"""OpenTelemetry spans around store operations.

Until ``setup_tracing`` installs a provider, spans come from the global
no-op tracer and cost next to nothing.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Mapping

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from dataorbit.infrastructure.config import ObservabilityConfig

TRACER_NAME = "dataorbit"

_tracer: trace.Tracer | None = None


def setup_tracing(config: ObservabilityConfig, console_export: bool = False) -> trace.Tracer:
    """Install a tracer provider exporting to the configured OTLP endpoint.

    Args:
        config: Supplies ``otel_service_name`` and ``otel_endpoint``.
        console_export: Also print finished spans (for debugging).
    """
    global _tracer

    from dataorbit import __version__

    resource = Resource.create(
        {"service.name": config.otel_service_name, "service.version": __version__}
    )
    provider = TracerProvider(resource=resource)
    if config.otel_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otel_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(TRACER_NAME, __version__)
    return _tracer


def span_attributes(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce attribute values to types a span accepts.

    Paths become strings, None values are dropped, and anything else that
    is not a primitive is rendered with ``str``.
    """
    coerced: dict[str, Any] = {}
    for name, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            value = list(value)
        elif not isinstance(value, (str, bool, int, float)):
            value = str(value)
        coerced[f"dataorbit.{name}"] = value
    return coerced


@contextmanager
def trace_span(
    name: str, attributes: Mapping[str, Any] | None = None
) -> Generator[trace.Span, None, None]:
    """Run the body inside a span; exceptions are recorded on it and re-raised."""
    tracer = _tracer or trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        if attributes:
            span.set_attributes(span_attributes(attributes))
        yield span
