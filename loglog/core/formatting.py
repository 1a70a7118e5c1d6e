"""
Line formatting for console output.

Structured mode renders the entry's serialization form as one JSON line;
human mode renders ``[ISO-timestamp] [LEVEL] message {context}`` followed by
error details when the entry carries a captured failure.
"""

import json

import structlog

from loglog.models import LogEntry, LogLevel


COLORS = {
    LogLevel.DEBUG: "\033[90m",  # Gray
    LogLevel.INFO: "\033[36m",   # Cyan
    LogLevel.WARN: "\033[33m",   # Yellow
    LogLevel.ERROR: "\033[31m",  # Red
}
RESET = "\033[0m"

_render_json = structlog.processors.JSONRenderer()


def format_structured(entry: LogEntry) -> str:
    """Render ``entry`` as a single JSON line."""
    return _render_json(None, entry.level.value, entry.to_dict())


def format_human(entry: LogEntry, show_timestamp: bool = True) -> str:
    """Render ``entry`` as a human-readable line (plus error lines)."""
    parts = []
    if show_timestamp:
        parts.append(f"[{entry.iso_timestamp}] ")
    parts.append(f"[{entry.level.value.upper()}] ")
    parts.append(entry.message)
    if entry.context:
        parts.append(" " + json.dumps(dict(entry.context), default=str))
    if entry.duration is not None:
        parts.append(f" ({entry.duration:.3f}ms)")
    if entry.error is not None:
        parts.append(f"\nError: {entry.error.message}")
        if entry.error.stack:
            parts.append(f"\nStack: {entry.error.stack.rstrip()}")
    return "".join(parts)


def colorize(level: LogLevel, message: str) -> str:
    """Wrap ``message`` in the ANSI colour for ``level``."""
    color = COLORS.get(level, "")
    return f"{color}{message}{RESET}" if color else message


def format_entry(
    entry: LogEntry,
    structured: bool = True,
    show_timestamp: bool = True,
    use_color: bool = False,
) -> str:
    line = format_structured(entry) if structured else format_human(entry, show_timestamp)
    return colorize(entry.level, line) if use_color else line
