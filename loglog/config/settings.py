"""
loglog configuration

Client and server deployment profiles built on pydantic-settings.

ARCHITECTURAL PRINCIPLES:
- Only this module reads environment variables (prefix ``LOGLOG_``)
- The Logger and transports receive explicit values from these models
- Malformed values fail fast with a pydantic ``ValidationError``
- Keyword arguments may use snake_case or the camelCase option names
  (``batchSize``, ``remoteEndpoint``, ``defaultContext`` ...)
"""

import re
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from loglog.models import LogLevel


# =============================================================================
# ENUMS AND KEY NORMALIZATION
# =============================================================================

class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Option names that differ by more than case style
_KEY_ALIASES = {"rotation_options": "rotation"}


def to_snake_case(name: str) -> str:
    """``flushInterval`` -> ``flush_interval``; snake_case passes through."""
    snake = _CAMEL_BOUNDARY.sub(r"_\1", name).lower()
    return _KEY_ALIASES.get(snake, snake)


def normalize_keys(data: Any) -> Any:
    """Rewrite top-level camelCase keys of a mapping to snake_case."""
    if not isinstance(data, dict):
        return data
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[to_snake_case(key) if isinstance(key, str) else key] = value
    return normalized


# =============================================================================
# CONFIGURATION SECTIONS
# =============================================================================

class RotationOptions(BaseModel):
    """File rotation options (``LOGLOG_ROTATION__MAX_SIZE`` etc.)."""

    max_size: Union[str, int] = Field(default="20m", description="Size threshold such as '20m' or '512k'")
    max_files: Union[str, int] = Field(default="14d", description="Rotated files kept; leading integer counts")
    date_pattern: Optional[str] = Field(default="YYYY-MM-DD", description="Rotation period pattern")
    zipped_archive: bool = Field(default=True, description="Gzip rotated files")

    @model_validator(mode="before")
    @classmethod
    def normalize_option_names(cls, data: Any) -> Any:
        return normalize_keys(data)


class EnvironmentConfig(BaseSettings):
    """Options shared by every deployment target."""

    level: LogLevel = Field(default=LogLevel.INFO)
    timestamp: bool = Field(default=True)
    colorize: bool = Field(default=True)
    structured: bool = Field(default=True)
    environment: str = Field(default=Environment.DEVELOPMENT.value)
    default_context: Dict[str, Any] = Field(default_factory=dict)

    enable_console: bool = Field(default=True)
    enable_file: bool = Field(default=False)
    enable_remote: bool = Field(default=False)
    labels: Dict[str, str] = Field(default_factory=dict)

    model_config = {
        "env_prefix": "LOGLOG_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def normalize_option_names(cls, data: Any) -> Any:
        return normalize_keys(data)

    @field_validator("level", mode="before")
    @classmethod
    def parse_level(cls, v):
        """Accept any case and the ``warning`` spelling."""
        return LogLevel.parse(v)

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v):
        if isinstance(v, Environment):
            return v.value
        return str(v).strip().lower()

    @field_validator("labels", mode="before")
    @classmethod
    def stringify_labels(cls, v):
        if v is None:
            return {}
        return {str(key): str(value) for key, value in dict(v).items()}


class ClientConfig(EnvironmentConfig):
    """Browser/edge style target: console plus batched remote delivery."""

    enable_remote: bool = Field(default=True)
    enable_file: bool = Field(default=False)

    remote_endpoint: Optional[str] = Field(default=None, description="Collection URL for remote delivery")
    batch_size: int = Field(default=50, ge=1)
    flush_interval: float = Field(default=5000, gt=0, description="Timer period in milliseconds")
    max_retries: int = Field(default=3, ge=0)


class ServerConfig(EnvironmentConfig):
    """Server target: console plus rotating JSON-lines files."""

    enable_file: bool = Field(default=True)
    enable_remote: bool = Field(default=False)

    log_directory: str = Field(default="logs")
    log_file_name: str = Field(default="app.log")
    rotation: RotationOptions = Field(default_factory=RotationOptions)
