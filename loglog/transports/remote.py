"""
Remote batching transport.

Buffers entries client-side and POSTs them to a collection endpoint in
batches. Two triggers start a flush: a recurring timer and the queue reaching
``batch_size``. A failed batch goes back to the head of the queue and is
retried after ``2 ** attempt`` seconds; once ``max_retries`` is exceeded the
batch is written entry by entry to a local fallback transport, so every
logged entry ends up either at the endpoint or in the fallback.

Queue state is only touched from the event loop thread. At most one flush
runs at a time per transport: triggered flushes use a single-slot task, and
every batch removal and send happens under ``_flush_lock``.
"""

import asyncio
import json
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Mapping, Optional, Set

import httpx

from loglog.diagnostics import get_logger
from loglog.exceptions import ConfigurationException, RemoteDeliveryError
from loglog.models import LogEntry
from loglog.core.scheduler import AsyncioScheduler, ScheduledTask, Scheduler
from loglog.transports.base import Transport
from loglog.transports.console import stderr_fallback


logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_FLUSH_INTERVAL_MS = 5000
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_QUEUE_SIZE = 10_000
FAILED_DELIVERY_LABEL = "remote-failed"


class RemoteTransport(Transport):
    """
    Batches entries and delivers them to ``endpoint`` as JSON.

    Wire format::

        POST <endpoint>
        Content-Type: application/json
        {"logs": [<entry>, ...], "timestamp": "<ISO-8601>", "labels": {...}}

    Any 2xx status is a success; other statuses and transport errors are
    retried with exponential backoff.

    Attributes:
        endpoint: Collection URL
        enabled: When False, ``log`` is a no-op
        batch_size: Maximum entries per request (and the size trigger)
        flush_interval: Timer period in milliseconds
        max_retries: Retries allowed for one failing batch
        labels: Static labels sent with every batch
    """

    def __init__(
        self,
        endpoint: Optional[str],
        enabled: bool = True,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        labels: Optional[Mapping[str, str]] = None,
        timeout: float = 10.0,
        headers: Optional[Mapping[str, str]] = None,
        max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE,
        fallback: Optional[Transport] = None,
        scheduler: Optional[Scheduler] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if enabled and not endpoint:
            raise ConfigurationException(
                "Remote delivery is enabled but no endpoint is configured"
            )
        if batch_size < 1:
            raise ConfigurationException("batch_size must be at least 1", {"batch_size": batch_size})
        if flush_interval <= 0:
            raise ConfigurationException(
                "flush_interval must be positive", {"flush_interval": flush_interval}
            )
        if max_retries < 0:
            raise ConfigurationException("max_retries cannot be negative", {"max_retries": max_retries})

        self.endpoint = endpoint
        self.enabled = enabled
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.max_retries = max_retries
        self.labels: Dict[str, str] = dict(labels or {})
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **dict(headers or {})}
        self.max_queue_size = max(max_queue_size, batch_size)
        self.fallback = fallback or stderr_fallback()

        self._scheduler = scheduler or AsyncioScheduler()
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None

        self._queue: Deque[LogEntry] = deque()
        self._retry_count = 0
        self._timer: Optional[ScheduledTask] = None
        self._retry_timers: Set[ScheduledTask] = set()
        self._flush_task: Optional[asyncio.Task] = None
        self._flush_lock = asyncio.Lock()
        self._flush_requested = False
        self._closed = False

        if self.enabled:
            self._ensure_timer()

    @classmethod
    def from_config(cls, config, **kwargs) -> "RemoteTransport":
        """Build from a ``ClientConfig``; ``kwargs`` override collaborators."""
        return cls(
            endpoint=config.remote_endpoint,
            enabled=config.enable_remote,
            batch_size=config.batch_size,
            flush_interval=config.flush_interval,
            max_retries=config.max_retries,
            labels=config.labels,
            **kwargs,
        )

    # -- observable state -------------------------------------------------

    @property
    def pending(self) -> int:
        """Entries waiting for delivery."""
        return len(self._queue)

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def in_flight(self) -> bool:
        return self._flush_lock.locked()

    @property
    def backing_off(self) -> bool:
        """True while a retry of a failed batch is scheduled."""
        return bool(self._retry_timers)

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Transport API ------------------------------------------------------

    def log(self, entry: LogEntry) -> None:
        if not self.enabled:
            return
        if self._closed:
            self._emit_fallback([entry], reason="transport_closed")
            return

        if len(self._queue) >= self.max_queue_size:
            overflow = [self._queue.popleft() for _ in range(len(self._queue) - self.max_queue_size + 1)]
            self._emit_fallback(overflow, reason="queue_full")
        self._queue.append(entry)

        self._ensure_timer()
        if len(self._queue) >= self.batch_size:
            self._trigger_flush()

    async def flush(self) -> bool:
        """
        Attempt delivery of one batch from the head of the queue.

        Waits behind a flush that is already in flight rather than running
        concurrently with it.

        Returns:
            True if the batch was delivered (or the queue was empty)
        """
        async with self._flush_lock:
            return await self._send_batch()

    async def wait_for_pending_flush(self) -> None:
        """Wait until the currently triggered flush (if any) has finished."""
        task = self._flush_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def cleanup(self) -> None:
        """
        Stop all timers and drain the queue.

        The recurring timer and every pending retry timer are cancelled, so
        nothing fires after teardown. Remaining entries are sent batch by
        batch; a batch that fails now goes to the fallback at once.
        """
        self._closed = True
        self._cancel_timers()
        await self.wait_for_pending_flush()

        while self._queue:
            await self.flush()

        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -- scheduling ---------------------------------------------------------

    def _ensure_timer(self) -> None:
        if self._timer is not None or self._closed:
            return
        try:
            self._timer = self._scheduler.call_every(
                self.flush_interval / 1000.0, self._on_timer_tick
            )
        except RuntimeError:
            # No running event loop yet; armed on the next log() inside one
            self._timer = None

    def _on_timer_tick(self) -> None:
        if self._queue:
            self._trigger_flush()

    def _trigger_flush(self) -> None:
        if self._closed:
            return
        if self.backing_off:
            # drained by the retry flush once it succeeds
            self._flush_requested = True
            return
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_requested = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._flush_task = loop.create_task(self._run_triggered_flush())

    async def _run_triggered_flush(self) -> None:
        async with self._flush_lock:
            delivered = await self._send_batch()
            while (
                delivered
                and self._flush_requested
                and len(self._queue) >= self.batch_size
                and not self._closed
            ):
                delivered = await self._send_batch()
            self._flush_requested = False

    def _schedule_retry(self, delay: float) -> None:
        holder: List[ScheduledTask] = []

        def fire() -> None:
            if holder:
                self._retry_timers.discard(holder[0])
            self._trigger_flush()

        task = self._scheduler.call_later(delay, fire)
        holder.append(task)
        self._retry_timers.add(task)

    def _cancel_timers(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._cancel_retry_timers()

    def _cancel_retry_timers(self) -> None:
        for task in list(self._retry_timers):
            task.cancel()
        self._retry_timers.clear()

    # -- delivery -----------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport)
        return self._client

    def build_payload(self, batch: List[LogEntry]) -> bytes:
        body: Dict[str, Any] = {
            "logs": [entry.to_dict() for entry in batch],
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "labels": self.labels,
        }
        return json.dumps(body, default=str).encode("utf-8")

    async def _send_batch(self) -> bool:
        if not self._queue:
            return True

        size = min(self.batch_size, len(self._queue))
        batch = [self._queue.popleft() for _ in range(size)]

        try:
            payload = self.build_payload(batch)
            response = await self._get_client().post(
                self.endpoint, content=payload, headers=self.headers
            )
            if not response.is_success:
                raise RemoteDeliveryError(
                    f"Remote endpoint answered {response.status_code}",
                    status_code=response.status_code,
                )
        except asyncio.CancelledError:
            self._queue.extendleft(reversed(batch))
            raise
        except Exception as error:
            self._handle_failure(batch, error)
            return False

        self._retry_count = 0
        logger.debug("remote_batch_delivered", endpoint=self.endpoint, entries=len(batch))
        return True

    def _handle_failure(self, batch: List[LogEntry], error: Exception) -> None:
        self._retry_count += 1

        if self._retry_count <= self.max_retries and not self._closed:
            self._queue.extendleft(reversed(batch))
            delay = 2 ** self._retry_count
            # at most one backoff timer is ever pending
            self._cancel_retry_timers()
            logger.warning(
                "remote_delivery_retry",
                endpoint=self.endpoint,
                entries=len(batch),
                attempt=self._retry_count,
                retry_in_seconds=delay,
                error=str(error),
                error_type=type(error).__name__,
            )
            self._schedule_retry(delay)
            return

        logger.error(
            "remote_delivery_abandoned",
            endpoint=self.endpoint,
            entries=len(batch),
            attempts=self._retry_count,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._emit_fallback(batch, reason="retries_exhausted")
        self._retry_count = 0

    def _emit_fallback(self, entries: List[LogEntry], reason: str) -> None:
        for entry in entries:
            tagged = entry.with_labels(delivery=FAILED_DELIVERY_LABEL)
            try:
                self.fallback.log(tagged)
            except Exception:
                logger.exception("remote_fallback_failed", reason=reason, message=entry.message)
