"""
Request logging middleware for aiohttp.web applications.

Example:
    >>> app = web.Application(middlewares=[create_logging_middleware(logger, exclude_paths=["/health"])])
    >>>
    >>> async def handler(request):
    ...     get_request_logger(request).info("handling")
    ...     return web.json_response({"ok": True})
"""

from typing import Any, Optional

from aiohttp import web

from loglog.adapters.base import (
    REQUEST_ID_HEADER,
    AdapterOptions,
    LoggingAdapter,
    RequestInfo,
    ResponseInfo,
)
from loglog.core.context import reset_current_logger, set_current_logger
from loglog.core.logger import Logger
from loglog.exceptions import RequestLoggerNotFound


REQUEST_LOGGER_KEY = "logger"


async def _read_body(request: web.Request) -> Any:
    if not request.can_read_body or "json" not in (request.content_type or ""):
        return None
    try:
        return await request.json()
    except ValueError:
        return None


def create_logging_middleware(logger: Logger, options: Optional[AdapterOptions] = None, **kwargs: Any):
    """
    Build an aiohttp middleware that logs each request and its outcome.

    The request-scoped logger is stored at ``request["logger"]`` and
    published through ``loglog.core.context.get_current_logger()``.
    ``web.HTTPException`` raised by a handler is logged with its own status
    and re-raised.

    Args:
        logger: Base logger for deriving request loggers
        options: Adapter options; keyword arguments are accepted instead

    Returns:
        Middleware for ``web.Application(middlewares=[...])``
    """
    adapter = LoggingAdapter(logger, options, **kwargs)

    @web.middleware
    async def logging_middleware(request: web.Request, handler):
        if not adapter.should_log(request.path):
            return await handler(request)

        request_info = RequestInfo(
            method=request.method,
            path=request.path,
            headers=request.headers,
            query=request.query,
            body=await _read_body(request) if adapter.options.log_body else None,
            ip=request.remote,
            user_agent=request.headers.get("User-Agent"),
        )
        scope = adapter.begin(request_info)
        request[REQUEST_LOGGER_KEY] = scope.logger
        token = set_current_logger(scope.logger)

        try:
            response = await handler(request)
        except web.HTTPException as e:
            scope.complete(ResponseInfo(status_code=e.status, headers=e.headers))
            raise
        except Exception as e:
            scope.fail(e)
            raise
        finally:
            reset_current_logger(token)

        scope.complete(
            ResponseInfo(
                status_code=response.status,
                headers=response.headers,
                size=response.content_length,
            )
        )
        if scope.request_id and not response.prepared:
            response.headers[REQUEST_ID_HEADER] = scope.request_id
        return response

    logging_middleware.adapter = adapter
    return logging_middleware


def get_request_logger(request: web.Request) -> Logger:
    """
    Return the request-scoped logger attached by the logging middleware.

    Raises:
        RequestLoggerNotFound: If the middleware did not handle this request
    """
    logger = request.get(REQUEST_LOGGER_KEY)
    if logger is None:
        raise RequestLoggerNotFound(
            "No request logger attached; is the logging middleware installed?",
            {"path": request.path},
        )
    return logger
