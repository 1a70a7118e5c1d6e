"""
Framework-neutral request/response logging.

Framework middlewares translate their request and response objects into
``RequestInfo`` / ``ResponseInfo`` and delegate everything else here:
request-scoped logger creation, redaction of sensitive headers and body
fields, and the request/completion entries themselves.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from loglog.config.settings import normalize_keys, to_snake_case
from loglog.core.context import get_trace_context
from loglog.core.logger import Logger
from loglog.exceptions import ConfigurationException
from loglog.models import REQUEST_ID


REDACTED = "[REDACTED]"

DEFAULT_SENSITIVE_HEADERS = ["authorization", "x-api-key", "cookie", "password"]
DEFAULT_SENSITIVE_BODY_FIELDS = ["password", "token", "apiKey", "secret", "credential"]

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestInfo:
    """Framework-independent view of an incoming request."""

    method: str
    path: str
    headers: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class ResponseInfo:
    """Framework-independent view of an outgoing response."""

    status_code: int
    headers: Mapping[str, Any] = field(default_factory=dict)
    duration: Optional[float] = None
    size: Optional[int] = None


@dataclass
class AdapterOptions:
    """
    Middleware options.

    Attributes:
        exclude_paths: Path prefixes that are not logged at all
        log_body: Include the (redacted) request body
        log_query: Include the (redacted) query parameters
        log_headers: Include the (redacted) request headers
        sensitive_headers: Header names replaced by ``[REDACTED]``
        sensitive_body_fields: Body and query keys replaced by ``[REDACTED]``
    """

    exclude_paths: List[str] = field(default_factory=list)
    log_body: bool = True
    log_query: bool = True
    log_headers: bool = True
    sensitive_headers: List[str] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_HEADERS))
    sensitive_body_fields: List[str] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_BODY_FIELDS))

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "AdapterOptions":
        """Build options from snake_case or camelCase keyword arguments."""
        options = normalize_keys(kwargs)
        # reported under the names the caller passed
        unknown = sorted(key for key in kwargs if to_snake_case(key) not in cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationException(
                f"Unknown adapter options: {', '.join(unknown)}",
                {"unknown": unknown},
            )
        return cls(**options)


def sanitize(data: Any, sensitive_fields: Iterable[str]) -> Any:
    """
    Return a copy of ``data`` with sensitive keys redacted.

    Keys match case-insensitively and exactly; nested mappings and lists are
    walked. Non-container values are returned unchanged.

    Example:
        >>> sanitize({"username": "a", "password": "x"}, ["password"])
        {'username': 'a', 'password': '[REDACTED]'}
    """
    fields = {f.lower() for f in sensitive_fields}
    return _sanitize(data, fields)


def _sanitize(data: Any, fields: set) -> Any:
    if isinstance(data, Mapping):
        return {
            key: REDACTED if str(key).lower() in fields else _sanitize(value, fields)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [_sanitize(item, fields) for item in data]
    return data


class RequestLogScope:
    """
    One request's logging lifecycle.

    The request entry is written when the scope is opened; exactly one of
    ``complete`` or ``fail`` then writes the final entry. Later calls are
    ignored, so a request is never reported twice.
    """

    def __init__(self, adapter: "LoggingAdapter", logger: Logger, request_info: RequestInfo):
        self.adapter = adapter
        self.logger = logger
        self.request_info = request_info
        self._elapsed = logger.start_timer()
        self._finished = False

    @property
    def request_id(self) -> Optional[str]:
        return self.logger.context.get(REQUEST_ID)

    @property
    def finished(self) -> bool:
        return self._finished

    def elapsed(self) -> float:
        return self._elapsed()

    def complete(self, response_info: ResponseInfo) -> bool:
        """Write the completion entry; returns False if already finished."""
        if self._finished:
            return False
        self._finished = True
        if response_info.duration is None:
            response_info.duration = self.elapsed()
        self.adapter.log_response(self.logger, response_info)
        return True

    def fail(self, error: BaseException) -> bool:
        """Write the failure entry for a handler exception."""
        if self._finished:
            return False
        self._finished = True
        self.adapter.log_failure(self.logger, error, self.elapsed())
        return True


class LoggingAdapter:
    """
    Shared request/response logging behaviour for framework middlewares.

    Args:
        logger: Base logger; request loggers are derived from it
        options: Adapter options (or pass them as keyword arguments)
    """

    def __init__(self, logger: Optional[Logger] = None, options: Optional[AdapterOptions] = None, **kwargs: Any):
        self.logger = logger
        self.options = options or AdapterOptions.from_kwargs(**kwargs)

    def initialize(self, logger: Logger) -> None:
        self.logger = logger

    def should_log(self, path: str) -> bool:
        return not any(path.startswith(prefix) for prefix in self.options.exclude_paths)

    def create_context(self, request_info: RequestInfo) -> Dict[str, Any]:
        """Request context: a fresh request id, active trace ids, method and path."""
        context: Dict[str, Any] = {REQUEST_ID: str(uuid.uuid4())}
        context.update(get_trace_context())
        context["method"] = request_info.method
        context["path"] = request_info.path
        return context

    def create_request_logger(self, request_info: RequestInfo) -> Logger:
        if self.logger is None:
            raise ConfigurationException("Logging adapter used before a logger was set")
        return self.logger.with_context(self.create_context(request_info))

    def log_request(self, logger: Logger, request_info: RequestInfo) -> None:
        data: Dict[str, Any] = {
            "method": request_info.method,
            "path": request_info.path,
            "ip": request_info.ip,
            "userAgent": request_info.user_agent,
        }
        if self.options.log_headers:
            data["headers"] = sanitize(request_info.headers, self.options.sensitive_headers)
        if self.options.log_query:
            data["query"] = sanitize(request_info.query, self.options.sensitive_body_fields)
        if self.options.log_body and request_info.body is not None:
            data["body"] = sanitize(request_info.body, self.options.sensitive_body_fields)
        logger.info("Incoming request", data)

    def log_response(self, logger: Logger, response_info: ResponseInfo) -> None:
        data = {
            "statusCode": response_info.status_code,
            "duration": response_info.duration,
            "responseSize": response_info.size,
        }
        if response_info.status_code >= 400:
            logger.error("Request failed", data)
        else:
            logger.info("Request completed", data)

    def log_failure(self, logger: Logger, error: BaseException, duration: float) -> None:
        logger.error(
            "Request failed",
            {"statusCode": 500, "duration": duration, "responseSize": None},
            error=error,
        )

    def begin(self, request_info: RequestInfo) -> RequestLogScope:
        """Create the request logger, write the request entry and open a scope."""
        request_logger = self.create_request_logger(request_info)
        scope = RequestLogScope(self, request_logger, request_info)
        self.log_request(request_logger, request_info)
        return scope

    async def cleanup(self) -> None:
        if self.logger is not None:
            await self.logger.cleanup()
