"""
Scheduled-task abstraction used by deferred transports.

Timers are explicit objects with a ``cancel()`` so an owner can tear down
every pending callback (interval flushes and retry backoffs alike) when it
shuts down. ``AsyncioScheduler`` runs callbacks on the running event loop;
tests substitute a scheduler that records delays and fires callbacks on
demand.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

from loglog.diagnostics import get_logger


logger = get_logger(__name__)


class ScheduledTask:
    """Handle for a pending delayed or recurring callback."""

    def __init__(self, handle: Union[asyncio.TimerHandle, asyncio.Task, None] = None):
        self._handle = handle
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()


class Scheduler(ABC):
    """Schedules plain callbacks after a delay or at a fixed interval (seconds)."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` once after ``delay`` seconds."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` every ``interval`` seconds until cancelled."""


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by the running asyncio event loop.

    Both methods raise ``RuntimeError`` when called outside a running loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        handle = self._get_loop().call_later(delay, callback)
        return ScheduledTask(handle)

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        task = self._get_loop().create_task(self._interval_loop(interval, callback))
        return ScheduledTask(task)

    @staticmethod
    async def _interval_loop(interval: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception:
                logger.exception("scheduled_callback_failed", interval_seconds=interval)
