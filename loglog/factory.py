"""
Logger factories.

Client and server loggers are plain ``Logger`` instances assembled by
composition: the factory reads a deployment profile and registers the
matching transports. No logger subclass exists per target.
"""

from typing import Any, List, Optional, TextIO, Type, TypeVar

import httpx

from loglog.config.settings import ClientConfig, EnvironmentConfig, ServerConfig
from loglog.core.logger import Logger, LoggerConfig
from loglog.core.scheduler import Scheduler
from loglog.diagnostics import get_logger
from loglog.exceptions import ConfigurationException
from loglog.transports.base import Transport
from loglog.transports.console import ConsoleTransport
from loglog.transports.file import FileTransport
from loglog.transports.remote import RemoteTransport


C = TypeVar("C", bound=EnvironmentConfig)

logger = get_logger(__name__)


def _resolve_config(config_class: Type[C], config: Optional[C], options: dict) -> C:
    """Merge keyword overrides over ``config`` (or the environment defaults)."""
    if config is None:
        return config_class(**options)
    if not options:
        return config
    return config_class(**{**config.model_dump(), **options})


def logger_config_from(config: EnvironmentConfig) -> LoggerConfig:
    return LoggerConfig(
        level=config.level,
        structured=config.structured,
        colorize=config.colorize,
        timestamp=config.timestamp,
        environment=config.environment,
        default_context=config.default_context,
    )


def build_console_transport(config: EnvironmentConfig, stream: Optional[TextIO] = None) -> ConsoleTransport:
    return ConsoleTransport(
        structured=config.structured,
        colorize=config.colorize,
        timestamp=config.timestamp,
        stream=stream,
    )


def build_remote_transport(config: ClientConfig, **kwargs: Any) -> Optional[RemoteTransport]:
    """
    Build the remote transport, or return None when it cannot run.

    A missing endpoint is reported as a ``remote_transport_disabled``
    diagnostic instead of failing logger construction.
    """
    try:
        return RemoteTransport.from_config(config, **kwargs)
    except ConfigurationException as e:
        logger.warning(
            "remote_transport_disabled",
            reason=str(e),
            endpoint=config.remote_endpoint,
            **e.details,
        )
        return None


def create_client_logger(
    config: Optional[ClientConfig] = None,
    *,
    stream: Optional[TextIO] = None,
    scheduler: Optional[Scheduler] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    fallback: Optional[Transport] = None,
    **options: Any,
) -> Logger:
    """
    Create a logger for client-side code: console and remote delivery.

    File output is never attached to a client logger, whatever
    ``enable_file`` says.

    Args:
        config: Base profile; defaults to ``ClientConfig()`` (environment aware)
        stream: Console stream override
        scheduler: Timer source for the remote transport
        http_transport: httpx transport for the remote client (tests)
        fallback: Local channel for undeliverable remote entries
        **options: Config overrides in snake_case or camelCase

    Example:
        >>> logger = create_client_logger(remoteEndpoint="https://logs.example.com/ingest")
        >>> logger.info("page viewed", {"path": "/home"})
    """
    config = _resolve_config(ClientConfig, config, options)

    transports: List[Transport] = []
    if config.enable_console:
        transports.append(build_console_transport(config, stream))
    if config.enable_remote:
        remote = build_remote_transport(
            config,
            scheduler=scheduler,
            http_transport=http_transport,
            fallback=fallback,
        )
        if remote is not None:
            transports.append(remote)

    return Logger(logger_config_from(config), transports)


def create_server_logger(
    config: Optional[ServerConfig] = None,
    *,
    stream: Optional[TextIO] = None,
    **options: Any,
) -> Logger:
    """
    Create a logger for server-side code: console and rotating files.

    Args:
        config: Base profile; defaults to ``ServerConfig()`` (environment aware)
        stream: Console stream override
        **options: Config overrides in snake_case or camelCase

    Example:
        >>> logger = create_server_logger(logDirectory="/var/log/api", level="debug")
    """
    config = _resolve_config(ServerConfig, config, options)

    transports: List[Transport] = []
    if config.enable_console:
        transports.append(build_console_transport(config, stream))
    if config.enable_file:
        transports.append(FileTransport.from_config(config))

    return Logger(logger_config_from(config), transports)
