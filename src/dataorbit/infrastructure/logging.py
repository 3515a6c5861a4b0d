"""Structured logging for store events.

Events are emitted through structlog as key/value pairs. Anything that
looks like key material is masked before rendering, so a passphrase bound
to a logger or passed with an event never reaches the output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Mapping, MutableMapping

import structlog
from pydantic import SecretStr
from structlog.types import Processor

from dataorbit.infrastructure.config import ObservabilityConfig

REDACTED = "**********"

SECRET_FIELDS = frozenset(
    {"encryption_key", "encryptionkey", "passphrase", "password", "secret", "key_material"}
)


def _redact(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return REDACTED
    if isinstance(value, Mapping):
        return {
            name: REDACTED if str(name).lower() in SECRET_FIELDS else _redact(item)
            for name, item in value.items()
        }
    return value


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask secret-named fields and SecretStr values, also inside nested mappings.

    Nested mappings are copied, never modified in place.
    """
    for name, value in event_dict.items():
        if name.lower() in SECRET_FIELDS:
            event_dict[name] = REDACTED
        else:
            event_dict[name] = _redact(value)
    return event_dict


def setup_logging(config: ObservabilityConfig | None = None) -> None:
    """Configure structlog for the process.

    Args:
        config: Level and format ('json' or 'console'); defaults apply when omitted.
    """
    config = config or ObservabilityConfig()
    level = getattr(logging, config.log_level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Logger for a module, optionally bound to context such as ``file=...``.

    Without context the logger stays lazy and follows later ``setup_logging`` calls.
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
