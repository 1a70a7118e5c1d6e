"""Console transport: one formatted line per entry on a text stream."""

import sys
from typing import Optional, TextIO

from loglog.core.formatting import format_entry
from loglog.models import LogEntry
from loglog.transports.base import Transport


class ConsoleTransport(Transport):
    """
    Writes entries to stdout (or any text stream).

    Args:
        structured: JSON lines when True, human-readable lines otherwise
        colorize: Wrap each line in the ANSI colour of its level
        timestamp: Show the timestamp prefix in human-readable mode
        stream: Target stream; resolved at write time when omitted so
            redirected ``sys.stdout`` is honoured
        use_stderr: Default to ``sys.stderr`` instead of ``sys.stdout``
    """

    def __init__(
        self,
        structured: bool = True,
        colorize: bool = False,
        timestamp: bool = True,
        stream: Optional[TextIO] = None,
        use_stderr: bool = False,
    ):
        self.structured = structured
        self.colorize = colorize
        self.timestamp = timestamp
        self._stream = stream
        self._use_stderr = use_stderr

    @property
    def stream(self) -> TextIO:
        if self._stream is not None:
            return self._stream
        return sys.stderr if self._use_stderr else sys.stdout

    def format(self, entry: LogEntry) -> str:
        return format_entry(
            entry,
            structured=self.structured,
            show_timestamp=self.timestamp,
            use_color=self.colorize,
        )

    def log(self, entry: LogEntry) -> None:
        stream = self.stream
        stream.write(self.format(entry) + "\n")
        stream.flush()


def stderr_fallback() -> ConsoleTransport:
    """Console transport used as the local fallback channel for remote delivery."""
    return ConsoleTransport(structured=True, colorize=False, use_stderr=True)
