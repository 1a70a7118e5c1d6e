"""
Web framework adapters.

Framework-specific middlewares live in their own modules so that importing
one does not import the other framework:

- ``loglog.adapters.starlette_middleware`` for Starlette and FastAPI
- ``loglog.adapters.aiohttp_middleware`` for aiohttp.web
"""

from loglog.adapters.base import (
    REDACTED,
    AdapterOptions,
    LoggingAdapter,
    RequestInfo,
    RequestLogScope,
    ResponseInfo,
    sanitize,
)

__all__ = [
    "REDACTED",
    "AdapterOptions",
    "LoggingAdapter",
    "RequestInfo",
    "RequestLogScope",
    "ResponseInfo",
    "sanitize",
]
