"""
File transport: newline-delimited JSON written through a rotating handler.

Rotation is delegated to the stdlib ``logging.handlers`` machinery. The
handler rolls the file over when it would exceed ``max_size`` or when the
date period derived from ``date_pattern`` changes, keeps ``max_files``
backups and optionally gzips them.
"""

import gzip
import json
import logging
import os
import re
import shutil
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loglog.exceptions import ConfigurationException
from loglog.models import LogEntry
from loglog.transports.base import Transport


DEFAULT_MAX_SIZE = "20m"
DEFAULT_MAX_FILES = "14d"
DEFAULT_DATE_PATTERN = "YYYY-MM-DD"

_SIZE_UNITS = {"": 1, "b": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}
_SIZE_RE = re.compile(r"^\s*(\d+)\s*([bkmg]?)b?\s*$", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")

# moment-style tokens used by date patterns, longest first
_DATE_TOKENS = [("YYYY", "%Y"), ("MM", "%m"), ("DD", "%d"), ("HH", "%H"), ("mm", "%M")]


def parse_size(value: Union[str, int, None]) -> int:
    """
    Convert a size such as ``"20m"`` or ``"512k"`` to bytes.

    Integers are taken as bytes; ``None`` or ``0`` disables size rotation.

    Raises:
        ConfigurationException: If the value cannot be parsed
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    match = _SIZE_RE.match(value)
    if not match:
        raise ConfigurationException(f"Invalid max size: {value!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[unit.lower()]


def parse_max_files(value: Union[str, int, None], default: int = 14) -> int:
    """Number of rotated files to keep; ``"14d"`` keeps 14."""
    if value is None:
        return default
    if isinstance(value, int):
        return max(value, 0)
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else default


def date_pattern_to_strftime(pattern: Optional[str]) -> Optional[str]:
    """Translate ``YYYY-MM-DD`` style patterns into strftime format."""
    if not pattern:
        return None
    result = pattern
    for token, directive in _DATE_TOKENS:
        result = result.replace(token, directive)
    return result


def _gzip_namer(name: str) -> str:
    return name + ".gz"


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


class RotatingJsonFileHandler(RotatingFileHandler):
    """
    Size-based rotating handler that also rolls over on date period changes.

    Args:
        filename: Path of the active log file
        max_bytes: Size threshold in bytes (0 disables size rotation)
        backup_count: Rotated files kept
        date_format: strftime format of the rotation period, or None
        compress: Gzip rotated files
    """

    def __init__(
        self,
        filename: str,
        max_bytes: int = 0,
        backup_count: int = 14,
        date_format: Optional[str] = None,
        compress: bool = False,
    ):
        super().__init__(
            filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )
        self.date_format = date_format
        self._period = self._current_period()
        if compress:
            self.namer = _gzip_namer
            self.rotator = _gzip_rotator

    def _current_period(self) -> Optional[str]:
        if not self.date_format:
            return None
        return datetime.now().strftime(self.date_format)

    def shouldRollover(self, record: logging.LogRecord) -> int:
        if self.date_format and self._current_period() != self._period:
            return 1
        return super().shouldRollover(record)

    def doRollover(self) -> None:
        super().doRollover()
        self._period = self._current_period()


class FileTransport(Transport):
    """
    Appends one JSON object per entry: ``{timestamp, level, message, data}``.

    ``data`` holds the entry context plus ``error``, ``duration`` and
    ``labels`` when present.
    """

    def __init__(
        self,
        directory: Union[str, Path] = "logs",
        filename: str = "app.log",
        max_size: Union[str, int, None] = DEFAULT_MAX_SIZE,
        max_files: Union[str, int, None] = DEFAULT_MAX_FILES,
        date_pattern: Optional[str] = DEFAULT_DATE_PATTERN,
        zipped_archive: bool = True,
    ):
        self.path = Path(directory) / filename
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = RotatingJsonFileHandler(
            str(self.path),
            max_bytes=parse_size(max_size),
            backup_count=parse_max_files(max_files),
            date_format=date_pattern_to_strftime(date_pattern),
            compress=zipped_archive,
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))

    @classmethod
    def from_config(cls, config) -> "FileTransport":
        """Build from a ``ServerConfig``."""
        rotation = config.rotation
        return cls(
            directory=config.log_directory,
            filename=config.log_file_name,
            max_size=rotation.max_size,
            max_files=rotation.max_files,
            date_pattern=rotation.date_pattern,
            zipped_archive=rotation.zipped_archive,
        )

    @staticmethod
    def serialize(entry: LogEntry) -> str:
        data: Dict[str, Any] = dict(entry.context)
        if entry.error is not None:
            data["error"] = entry.error.to_dict()
        if entry.duration is not None:
            data["duration"] = entry.duration
        if entry.labels:
            data["labels"] = dict(entry.labels)
        return json.dumps(
            {
                "timestamp": entry.iso_timestamp,
                "level": entry.level.value,
                "message": entry.message,
                "data": data,
            },
            default=str,
        )

    def log(self, entry: LogEntry) -> None:
        record = logging.makeLogRecord(
            {"msg": self.serialize(entry), "levelname": entry.level.value.upper()}
        )
        self._handler.handle(record)

    async def cleanup(self) -> None:
        self._handler.close()
