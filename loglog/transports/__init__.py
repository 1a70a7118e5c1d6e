"""Log sinks: console, rotating file and batched remote delivery."""

from loglog.transports.base import Transport
from loglog.transports.console import ConsoleTransport
from loglog.transports.file import FileTransport
from loglog.transports.remote import RemoteTransport

__all__ = ["Transport", "ConsoleTransport", "FileTransport", "RemoteTransport"]
