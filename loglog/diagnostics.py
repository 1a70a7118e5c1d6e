"""
loglog diagnostics logging

The library's own messages (transport failures, abandoned remote batches,
disabled transports) go through structlog loggers bound onto stdlib
``logging`` loggers under the ``loglog`` namespace. Nothing here calls
``structlog.configure``: the host application keeps control of its global
structlog setup and routes or silences these messages with ordinary stdlib
logging configuration.
"""

import logging
import sys
from typing import Any, Dict, Optional, TextIO

import structlog

from loglog.core.context import get_trace_context


def add_trace_context(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Add OpenTelemetry trace context to diagnostic entries.

    Args:
        logger: Logger instance
        method_name: Log method name
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with trace context
    """
    for key, value in get_trace_context().items():
        # Add trace information only if not already present
        event_dict.setdefault(key, value)
    return event_dict


_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    add_trace_context,
    structlog.processors.JSONRenderer(),
]


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a diagnostics logger.

    Args:
        name: Logger name, typically ``__name__`` of a loglog module

    Returns:
        structlog BoundLogger writing JSON lines to the stdlib logger ``name``

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("remote_transport_disabled", reason="no endpoint")
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_diagnostics(level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """
    Send loglog diagnostics to ``stream`` (stderr by default).

    Intended for command-line use; applications normally configure the
    ``loglog`` stdlib logger themselves.
    """
    root = logging.getLogger("loglog")
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
