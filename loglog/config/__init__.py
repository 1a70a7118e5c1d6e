"""Configuration models for client and server loggers."""

from loglog.config.settings import (
    ClientConfig,
    Environment,
    EnvironmentConfig,
    RotationOptions,
    ServerConfig,
)

__all__ = [
    "ClientConfig",
    "Environment",
    "EnvironmentConfig",
    "RotationOptions",
    "ServerConfig",
]
