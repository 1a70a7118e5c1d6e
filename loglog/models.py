"""
Core data models for loglog.

A ``LogEntry`` is the unit that flows from the Logger to every transport.
Entries are frozen once created: enrichment and tagging always produce a
derived copy so a transport can never alter what another transport sees.
"""

import traceback
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


# Context keys with a defined meaning; anything else is passthrough data
REQUEST_ID = "requestId"
TRACE_ID = "traceId"
SPAN_ID = "spanId"
USER_ID = "userId"
SESSION_ID = "sessionId"
ENVIRONMENT = "environment"
COMPONENT = "component"

RESERVED_CONTEXT_KEYS = frozenset(
    {REQUEST_ID, TRACE_ID, SPAN_ID, USER_ID, SESSION_ID, ENVIRONMENT, COMPONENT}
)


class LogLevel(str, Enum):
    """Log levels ordered by verbosity: debug < info < warn < error."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: Any) -> "LogLevel":
        """
        Convert a level name into a LogLevel.

        Accepts LogLevel members and case-insensitive names, including the
        stdlib spelling ``warning``.

        Raises:
            ValueError: If the name does not match any level
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "warning":
            name = "warn"
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown log level: {value!r}") from None

    def __lt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


@dataclass(frozen=True)
class CapturedError:
    """A failure captured at log time (type, message and stack text)."""

    name: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException) -> "CapturedError":
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return cls(name=type(error).__name__, message=str(error), stack=stack)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "message": self.message, "stack": self.stack}


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class LogEntry:
    """
    One structured log record.

    Attributes:
        level: Severity of the entry
        message: Human-readable text
        timestamp: Creation time (UTC), never the flush time
        context: Read-only key/value metadata
        error: Captured failure, if the entry carries one
        duration: Elapsed milliseconds set by timing helpers
        labels: Flat string tags, used as batch metadata by remote delivery
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[CapturedError] = None
    duration: Optional[float] = None
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "level", LogLevel.parse(self.level))
        object.__setattr__(self, "context", _freeze(self.context))
        object.__setattr__(
            self, "labels", _freeze({str(k): str(v) for k, v in (self.labels or {}).items()})
        )

    @property
    def iso_timestamp(self) -> str:
        return self.timestamp.isoformat(timespec="milliseconds")

    def with_labels(self, **labels: str) -> "LogEntry":
        """Return a copy of this entry with extra labels merged in."""
        return replace(self, labels={**self.labels, **labels})

    def to_dict(self) -> Dict[str, Any]:
        """Serialization form shared by the remote and structured console outputs."""
        data: Dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.iso_timestamp,
            "context": dict(self.context),
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.duration is not None:
            data["duration"] = self.duration
        if self.labels:
            data["labels"] = dict(self.labels)
        return data
