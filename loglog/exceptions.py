"""Custom exceptions for loglog."""

from typing import Any, Dict, Optional


class LogLogException(Exception):
    """Base exception for all loglog errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationException(LogLogException):
    """Raised when configuration is invalid."""
    pass


class TransportException(LogLogException):
    """Raised when a transport cannot write an entry."""
    pass


class RemoteDeliveryError(TransportException):
    """Raised when the remote endpoint rejects a batch."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class RequestLoggerNotFound(LogLogException):
    """Raised when a request has no request-scoped logger attached."""
    pass
