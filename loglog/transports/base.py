"""Transport interface shared by every log sink."""

from abc import ABC, abstractmethod

from loglog.models import LogEntry


class Transport(ABC):
    """
    A sink that consumes log entries.

    ``log`` is called synchronously by the Logger for every entry that passed
    level filtering; buffering, if any, is the transport's own business.
    ``cleanup`` releases resources and drains buffers before shutdown.
    """

    @abstractmethod
    def log(self, entry: LogEntry) -> None:
        """Consume one entry."""

    async def cleanup(self) -> None:
        """Flush buffered entries and release resources (no-op by default)."""
        return None
