"""
Request logging middleware for Starlette and FastAPI applications.

Example:
    >>> app = FastAPI()
    >>> app.add_middleware(LoggingMiddleware, logger=create_server_logger(), exclude_paths=["/health"])
    >>>
    >>> @app.get("/items")
    ... async def items(request: Request):
    ...     get_request_logger(request).info("listing items")
"""

import json
from typing import Any, AsyncIterator, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from loglog.adapters.base import (
    REQUEST_ID_HEADER,
    AdapterOptions,
    LoggingAdapter,
    RequestInfo,
    RequestLogScope,
    ResponseInfo,
)
from loglog.core.context import reset_current_logger, set_current_logger
from loglog.core.logger import Logger
from loglog.exceptions import RequestLoggerNotFound


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and its outcome through a request-scoped logger.

    The request logger carries ``requestId``, trace ids, method and path. It
    is exposed as ``request.state.logger`` and through
    ``loglog.core.context.get_current_logger()`` for the duration of the
    request, and the request id is returned in the ``X-Request-ID`` header.
    The outcome is logged once the response body has been sent, so a
    streamed body that breaks midway is logged as a failure.
    """

    def __init__(self, app, logger: Logger, options: Optional[AdapterOptions] = None, **kwargs: Any):
        super().__init__(app)
        self.adapter = LoggingAdapter(logger, options, **kwargs)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not self.adapter.should_log(path):
            return await call_next(request)

        request_info = RequestInfo(
            method=request.method,
            path=path,
            headers=request.headers,
            query=request.query_params,
            body=await self._read_body(request) if self.adapter.options.log_body else None,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        scope = self.adapter.begin(request_info)
        request.state.logger = scope.logger
        token = set_current_logger(scope.logger)

        try:
            response = await call_next(request)
        except Exception as e:
            scope.fail(e)
            raise
        finally:
            reset_current_logger(token)

        if scope.request_id:
            response.headers[REQUEST_ID_HEADER] = scope.request_id
        body_iterator = getattr(response, "body_iterator", None)
        if body_iterator is None:
            scope.complete(self._response_info(response, None))
            return response
        response.body_iterator = self._log_after_body(response, body_iterator, scope)
        return response

    async def _log_after_body(
        self, response: Response, body_iterator: AsyncIterator[Any], scope: RequestLogScope
    ) -> AsyncIterator[Any]:
        """Pass the body through and log the outcome once the last chunk is sent."""
        sent = 0
        try:
            async for chunk in body_iterator:
                sent += len(chunk)
                yield chunk
        except Exception as e:
            scope.fail(e)
            raise
        scope.complete(self._response_info(response, sent))

    @staticmethod
    def _response_info(response: Response, sent: Optional[int]) -> ResponseInfo:
        content_length = response.headers.get("content-length")
        return ResponseInfo(
            status_code=response.status_code,
            headers=response.headers,
            size=int(content_length) if content_length and content_length.isdigit() else sent,
        )

    @staticmethod
    async def _read_body(request: Request) -> Any:
        """JSON bodies are parsed; anything else is not logged."""
        if "json" not in request.headers.get("content-type", ""):
            return None
        raw = await request.body()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None


def get_request_logger(request: Request) -> Logger:
    """
    Return the request-scoped logger attached by ``LoggingMiddleware``.

    Raises:
        RequestLoggerNotFound: If the middleware did not handle this request
    """
    logger = getattr(request.state, "logger", None)
    if logger is None:
        raise RequestLoggerNotFound(
            "No request logger attached; is LoggingMiddleware installed?",
            {"path": request.url.path},
        )
    return logger
