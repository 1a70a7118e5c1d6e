"""
Context propagation for loglog.

Ambient context is carried in context variables so it follows asyncio tasks
across await points: values bound with ``bind_context`` are merged into every
entry logged inside the block, and framework adapters publish the
request-scoped logger through ``current_logger``. Trace identifiers come from
the active OpenTelemetry span.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Iterator, Mapping, Optional

from opentelemetry import trace

from loglog.models import SPAN_ID, TRACE_ID

if TYPE_CHECKING:
    from loglog.core.logger import Logger


_EMPTY: Mapping[str, Any] = MappingProxyType({})

# Request-scoped data
_ambient_context: ContextVar[Mapping[str, Any]] = ContextVar(
    "loglog_ambient_context", default=_EMPTY
)
_current_logger: ContextVar[Optional["Logger"]] = ContextVar(
    "loglog_current_logger", default=None
)


def get_ambient_context() -> Dict[str, Any]:
    """Return a copy of the context bound in the current execution context."""
    return dict(_ambient_context.get())


@contextmanager
def bind_context(**values: Any) -> Iterator[Dict[str, Any]]:
    """
    Merge ``values`` into the ambient context for the duration of the block.

    Nested blocks layer over the outer ones; the previous context is restored
    on exit even if the block raises.

    Example:
        >>> with bind_context(userId="u-1"):
        ...     logger.info("profile loaded")  # carries userId
    """
    merged = MappingProxyType({**_ambient_context.get(), **values})
    token = _ambient_context.set(merged)
    try:
        yield dict(merged)
    finally:
        _ambient_context.reset(token)


def get_current_logger() -> Optional["Logger"]:
    """Return the request-scoped logger published by an adapter, if any."""
    return _current_logger.get()


def set_current_logger(logger: Optional["Logger"]):
    """Publish ``logger`` as the current request logger; returns a reset token."""
    return _current_logger.set(logger)


def reset_current_logger(token) -> None:
    _current_logger.reset(token)


def get_trace_context() -> Dict[str, str]:
    """
    Return trace and span ids of the active OpenTelemetry span.

    Ids are rendered as lowercase hex (32 and 16 chars). An empty dict is
    returned when no valid span is active.
    """
    span = trace.get_current_span()
    span_context = span.get_span_context() if span else None
    if span_context is None or not span_context.is_valid:
        return {}
    return {
        TRACE_ID: format(span_context.trace_id, "032x"),
        SPAN_ID: format(span_context.span_id, "016x"),
    }
