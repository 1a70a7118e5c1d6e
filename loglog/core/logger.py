"""
loglog Logger

The Logger owns a configuration, a default context and an ordered registry of
transports. Every level method builds one immutable ``LogEntry``, filters it
once against the configured threshold and hands it to each transport in
registration order. A transport that raises is reported on the diagnostics
channel and never stops the remaining transports or reaches the caller.
"""

import inspect
import time as _time
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar, Union

from loglog.core.context import get_ambient_context, get_trace_context
from loglog.diagnostics import get_logger
from loglog.models import ENVIRONMENT, CapturedError, LogEntry, LogLevel
from loglog.transports.base import Transport


T = TypeVar("T")

diagnostics = get_logger(__name__)


@dataclass(frozen=True)
class LoggerConfig:
    """
    Per-Logger configuration.

    Attributes:
        level: Minimum level that reaches the transports
        structured: JSON output when True (consumed by console-style transports)
        colorize: ANSI colour per level
        timestamp: Show timestamps in human-readable output
        environment: Environment tag added to every entry's context
        default_context: Context merged into every entry
    """

    level: LogLevel = LogLevel.INFO
    structured: bool = True
    colorize: bool = True
    timestamp: bool = True
    environment: str = "development"
    default_context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "level", LogLevel.parse(self.level))
        object.__setattr__(self, "environment", str(getattr(self.environment, "value", self.environment)))
        object.__setattr__(self, "default_context", MappingProxyType(dict(self.default_context or {})))


class Logger:
    """
    Structured logger fanning entries out to pluggable transports.

    Example:
        >>> logger = Logger(LoggerConfig(level="debug"), [ConsoleTransport()])
        >>> logger.info("Application started", {"component": "api"})
        >>> request_logger = logger.with_context({"requestId": "r-1"})
    """

    def __init__(
        self,
        config: Optional[LoggerConfig] = None,
        transports: Optional[Sequence[Transport]] = None,
    ):
        self.config = config or LoggerConfig()
        self._transports: List[Transport] = list(transports or [])

    # -- configuration -------------------------------------------------------

    @property
    def level(self) -> LogLevel:
        return self.config.level

    @property
    def context(self) -> Mapping[str, Any]:
        """Default context including the environment tag (read-only)."""
        return MappingProxyType({ENVIRONMENT: self.config.environment, **self.config.default_context})

    @property
    def transports(self) -> List[Transport]:
        return list(self._transports)

    def add_transport(self, transport: Transport) -> None:
        self._transports.append(transport)

    def is_enabled_for(self, level: Union[LogLevel, str]) -> bool:
        return LogLevel.parse(level) >= self.config.level

    def with_context(self, extra: Optional[Mapping[str, Any]] = None) -> "Logger":
        """
        Derive a logger whose default context is ``extra`` merged over ours.

        The derived logger shares this logger's transport instances, so a
        request-scoped logger does not create new timers or file handles.
        Neither logger's configuration is mutated.
        """
        config = replace(
            self.config,
            default_context={**self.config.default_context, **dict(extra or {})},
        )
        return Logger(config, self._transports)

    # -- level methods -------------------------------------------------------

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None,
              error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.DEBUG, message, context, error)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None,
             error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.INFO, message, context, error)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None,
             error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.WARN, message, context, error)

    warning = warn

    def error(self, message: str, context: Optional[Mapping[str, Any]] = None,
              error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.ERROR, message, context, error)

    def log(
        self,
        level: Union[LogLevel, str],
        message: str,
        context: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
        duration: Optional[float] = None,
    ) -> None:
        """
        Build an entry and dispatch it.

        Never raises: a call that cannot be turned into an entry (unknown
        level, non-mapping context, unprintable message) is reported as a
        ``log_call_failed`` diagnostic. An exception passed positionally in
        place of the context is logged as the entry's error.
        """
        try:
            level = LogLevel.parse(level)
            if level < self.config.level:
                return
            if isinstance(context, BaseException) and error is None:
                context, error = None, context
            entry = self._create_entry(level, message, context, error, duration)
        except Exception as exc:
            diagnostics.error(
                "log_call_failed",
                level=repr(level),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return
        self._dispatch(entry)

    def _build_context(self, context: Optional[Mapping[str, Any]]) -> dict:
        merged = {ENVIRONMENT: self.config.environment}
        merged.update(self.config.default_context)
        merged.update(get_ambient_context())
        for key, value in get_trace_context().items():
            if merged.get(key) is None:
                merged[key] = value
        if context:
            merged.update(dict(context))
        return merged

    def _create_entry(
        self,
        level: LogLevel,
        message: str,
        context: Optional[Mapping[str, Any]],
        error: Optional[BaseException],
        duration: Optional[float],
    ) -> LogEntry:
        return LogEntry(
            level=level,
            message=str(message),
            context=self._build_context(context),
            error=CapturedError.from_exception(error) if error is not None else None,
            duration=duration,
        )

    def _dispatch(self, entry: LogEntry) -> None:
        for transport in list(self._transports):
            try:
                transport.log(entry)
            except Exception as exc:
                diagnostics.error(
                    "transport_failed",
                    transport=type(transport).__name__,
                    entry_message=entry.message,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    # -- timing --------------------------------------------------------------

    @staticmethod
    def start_timer() -> Callable[[], float]:
        """
        Start a monotonic timer.

        Returns:
            Zero-argument function returning milliseconds elapsed since this call
        """
        start = _time.perf_counter()

        def elapsed() -> float:
            return (_time.perf_counter() - start) * 1000.0

        return elapsed

    async def time(
        self,
        label: str,
        operation: Union[Callable[[], Union[T, Awaitable[T]]], Awaitable[T]],
        context: Optional[Mapping[str, Any]] = None,
    ) -> T:
        """
        Run ``operation`` and log how long it took.

        Logs ``label`` at info level with ``duration`` on success, or at error
        level with ``duration`` and the captured failure on error. The
        original exception is re-raised unchanged.

        Args:
            label: Message for the timing entry
            operation: Zero-argument callable (sync or async) or an awaitable
            context: Extra context for the timing entry

        Example:
            >>> rows = await logger.time("query users", lambda: db.fetch_all(sql))
        """
        timer = self.start_timer()
        try:
            if inspect.isawaitable(operation):
                result = await operation
            else:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
        except Exception as exc:
            self.log(LogLevel.ERROR, label, context, exc, duration=timer())
            raise
        self.log(LogLevel.INFO, label, context, duration=timer())
        return result

    # -- lifecycle -----------------------------------------------------------

    async def cleanup(self) -> None:
        """Await ``cleanup()`` of every transport, in registration order."""
        for transport in list(self._transports):
            try:
                await transport.cleanup()
            except Exception as exc:
                diagnostics.error(
                    "transport_cleanup_failed",
                    transport=type(transport).__name__,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
