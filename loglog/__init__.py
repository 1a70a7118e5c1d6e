"""
loglog: structured logging with pluggable transports.

Example:
    >>> from loglog import create_server_logger
    >>> logger = create_server_logger(level="debug", logDirectory="logs")
    >>> logger.info("service started", {"component": "api"})
"""

from loglog.core.context import bind_context, get_current_logger
from loglog.core.logger import Logger, LoggerConfig
from loglog.exceptions import (
    ConfigurationException,
    LogLogException,
    RemoteDeliveryError,
    RequestLoggerNotFound,
    TransportException,
)
from loglog.factory import create_client_logger, create_server_logger
from loglog.models import CapturedError, LogEntry, LogLevel
from loglog.transports import ConsoleTransport, FileTransport, RemoteTransport, Transport

__version__ = "1.0.0"

__all__ = [
    "CapturedError",
    "ConfigurationException",
    "ConsoleTransport",
    "FileTransport",
    "LogEntry",
    "LogLevel",
    "LogLogException",
    "Logger",
    "LoggerConfig",
    "RemoteDeliveryError",
    "RemoteTransport",
    "RequestLoggerNotFound",
    "Transport",
    "TransportException",
    "bind_context",
    "create_client_logger",
    "create_server_logger",
    "get_current_logger",
]
