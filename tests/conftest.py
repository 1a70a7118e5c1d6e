"""Shared pytest fixtures and configuration for loglog tests."""

import json
import logging
import os
from typing import Callable, List, Optional, Tuple

import httpx
import pytest

from loglog.core.logger import Logger, LoggerConfig
from loglog.core.scheduler import ScheduledTask, Scheduler
from loglog.models import LogEntry
from loglog.transports.base import Transport


class RecordingTransport(Transport):
    """Keeps every entry it receives."""

    def __init__(self):
        self.entries: List[LogEntry] = []
        self.cleaned_up = False

    def log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    async def cleanup(self) -> None:
        self.cleaned_up = True

    @property
    def messages(self) -> List[str]:
        return [entry.message for entry in self.entries]


class FakeScheduler(Scheduler):
    """Records requested delays; callbacks run only when a test fires them."""

    def __init__(self):
        self.later: List[Tuple[float, Callable[[], None], ScheduledTask]] = []
        self.every: List[Tuple[float, Callable[[], None], ScheduledTask]] = []

    def call_later(self, delay, callback):
        task = ScheduledTask()
        self.later.append((delay, callback, task))
        return task

    def call_every(self, interval, callback):
        task = ScheduledTask()
        self.every.append((interval, callback, task))
        return task

    @property
    def delays(self) -> List[float]:
        return [delay for delay, _, _ in self.later]

    def pending_later(self):
        return [(d, cb, t) for d, cb, t in self.later if not t.cancelled]

    def fire_next_later(self) -> float:
        """Run the oldest pending one-shot callback and return its delay."""
        for delay, callback, task in self.later:
            if not task.cancelled:
                task.cancel()
                callback()
                return delay
        raise AssertionError("no pending one-shot callback")

    def tick(self) -> None:
        """Run every active interval callback once."""
        for _, callback, task in self.every:
            if not task.cancelled:
                callback()


class EndpointRecorder:
    """httpx MockTransport handler recording each request body."""

    def __init__(self, statuses: Optional[List[int]] = None):
        self.statuses = list(statuses or [])
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else 200
        return httpx.Response(status, json={"ok": status < 400})

    @property
    def payloads(self):
        return [json.loads(request.content) for request in self.requests]

    @property
    def delivered_messages(self) -> List[str]:
        return [log["message"] for payload in self.payloads for log in payload["logs"]]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep LOGLOG_* variables from the developer shell out of configuration defaults."""
    for key in list(os.environ):
        if key.upper().startswith("LOGLOG_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def reset_diagnostics_logger():
    """Drop handlers the CLI attaches to the loglog logger."""
    yield
    root = logging.getLogger("loglog")
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def recording_transport():
    return RecordingTransport()


@pytest.fixture
def make_recording_transport():
    return RecordingTransport


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def endpoint():
    """Recorder answering 200 unless given statuses; wrap with ``httpx.MockTransport``."""
    return EndpointRecorder()


@pytest.fixture
def make_endpoint():
    return EndpointRecorder


@pytest.fixture
def debug_logger(recording_transport):
    """Logger at debug level writing to a recording transport."""
    return Logger(LoggerConfig(level="debug", environment="test"), [recording_transport])
