"""
Test module for loglog.core.logger
"""

import asyncio
import logging

import pytest
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags

from loglog.core.context import bind_context
from loglog.core.logger import Logger, LoggerConfig
from loglog.models import LogLevel
from loglog.transports.base import Transport


class ExplodingTransport(Transport):
    def log(self, entry):
        raise IOError("disk full")

    async def cleanup(self):
        raise RuntimeError("cleanup failed")


class TestLevelFiltering:
    """Entries below the threshold never reach a transport."""

    def test_below_threshold_is_dropped(self, recording_transport):
        logger = Logger(LoggerConfig(level="warn"), [recording_transport])

        logger.debug("d")
        logger.info("i")
        logger.warn("w")
        logger.error("e")

        assert recording_transport.messages == ["w", "e"]

    def test_warning_alias(self, debug_logger, recording_transport):
        debug_logger.warning("careful")

        assert recording_transport.entries[0].level is LogLevel.WARN

    def test_is_enabled_for(self):
        logger = Logger(LoggerConfig(level="info"))

        assert logger.is_enabled_for("error")
        assert not logger.is_enabled_for(LogLevel.DEBUG)


class TestFanOut:
    """Dispatch order and transport isolation."""

    def test_transports_receive_same_entry_in_order(self, make_recording_transport):
        first, second = make_recording_transport(), make_recording_transport()
        logger = Logger(LoggerConfig(), [first])
        logger.add_transport(second)

        logger.info("hello")

        assert first.entries[0] is second.entries[0]

    def test_failing_transport_is_isolated(self, recording_transport, caplog):
        logger = Logger(LoggerConfig(), [ExplodingTransport(), recording_transport])

        with caplog.at_level(logging.ERROR, logger="loglog"):
            logger.info("still delivered")

        assert recording_transport.messages == ["still delivered"]
        assert "transport_failed" in caplog.text
        assert "disk full" in caplog.text

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_stop_other_transports(self, recording_transport, caplog):
        logger = Logger(LoggerConfig(), [ExplodingTransport(), recording_transport])

        with caplog.at_level(logging.ERROR, logger="loglog"):
            await logger.cleanup()

        assert recording_transport.cleaned_up
        assert "transport_cleanup_failed" in caplog.text


class TestLoggingNeverRaises:
    """Malformed calls are reported on the diagnostics channel instead of raising."""

    def test_exception_in_context_position_becomes_error(self, debug_logger, recording_transport):
        debug_logger.error("boom", ValueError("x"))

        entry = recording_transport.entries[0]
        assert entry.message == "boom"
        assert entry.error.name == "ValueError"
        assert entry.error.message == "x"
        assert "environment" in entry.context

    def test_non_mapping_context(self, debug_logger, recording_transport, caplog):
        with caplog.at_level(logging.ERROR, logger="loglog"):
            debug_logger.info("bad context", 42)

        assert recording_transport.entries == []
        assert "log_call_failed" in caplog.text

    def test_unknown_level(self, debug_logger, recording_transport, caplog):
        with caplog.at_level(logging.ERROR, logger="loglog"):
            debug_logger.log("loud", "x")

        assert recording_transport.entries == []
        assert "log_call_failed" in caplog.text

    def test_unprintable_message(self, debug_logger, recording_transport, caplog):
        class Unprintable:
            def __str__(self):
                raise RuntimeError("no text")

        with caplog.at_level(logging.ERROR, logger="loglog"):
            debug_logger.warn(Unprintable())

        assert recording_transport.entries == []
        assert "no text" in caplog.text


class TestContext:
    """Context enrichment and derived loggers."""

    def test_environment_and_default_context(self, recording_transport):
        logger = Logger(
            LoggerConfig(environment="production", default_context={"component": "api"}),
            [recording_transport],
        )

        logger.info("x", {"userId": "u-1"})

        assert dict(recording_transport.entries[0].context) == {
            "environment": "production",
            "component": "api",
            "userId": "u-1",
        }

    def test_call_context_overrides_default(self, recording_transport):
        logger = Logger(LoggerConfig(default_context={"component": "api"}), [recording_transport])

        logger.info("x", {"component": "worker"})

        assert recording_transport.entries[0].context["component"] == "worker"

    def test_with_context_merges_without_mutating_parent(self, debug_logger, recording_transport):
        child = debug_logger.with_context({"requestId": "r-1"})

        child.info("child")
        debug_logger.info("parent")

        assert recording_transport.entries[0].context["requestId"] == "r-1"
        assert "requestId" not in recording_transport.entries[1].context
        assert "requestId" not in debug_logger.context

    def test_with_empty_context_is_equivalent(self, debug_logger):
        derived = debug_logger.with_context({})

        assert dict(derived.context) == dict(debug_logger.context)
        assert derived.level is debug_logger.level
        assert derived.transports == debug_logger.transports

    def test_ambient_context_is_merged(self, debug_logger, recording_transport):
        with bind_context(sessionId="s-9"):
            debug_logger.info("inside")
        debug_logger.info("outside")

        assert recording_transport.entries[0].context["sessionId"] == "s-9"
        assert "sessionId" not in recording_transport.entries[1].context

    def test_trace_ids_from_active_span(self, debug_logger, recording_transport):
        span_context = SpanContext(
            trace_id=0x1234,
            span_id=0x5678,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
        with trace.use_span(NonRecordingSpan(span_context)):
            debug_logger.info("traced")
            debug_logger.info("explicit", {"traceId": "mine"})

        first, second = recording_transport.entries
        assert first.context["traceId"] == format(0x1234, "032x")
        assert first.context["spanId"] == format(0x5678, "016x")
        assert second.context["traceId"] == "mine"

    def test_error_is_captured(self, debug_logger, recording_transport):
        try:
            raise ValueError("boom")
        except ValueError as e:
            debug_logger.error("failed", error=e)

        error = recording_transport.entries[0].error
        assert error.name == "ValueError"
        assert error.message == "boom"


class TestTiming:
    """start_timer and time()."""

    def test_start_timer_is_monotonic(self):
        elapsed = Logger.start_timer()

        first = elapsed()
        second = elapsed()

        assert 0 <= first <= second

    @pytest.mark.asyncio
    async def test_time_success_logs_info_with_duration(self, debug_logger, recording_transport):
        async def operation():
            await asyncio.sleep(0)
            return 42

        result = await debug_logger.time("op", operation, {"component": "db"})

        assert result == 42
        entry = recording_transport.entries[0]
        assert entry.level is LogLevel.INFO
        assert entry.message == "op"
        assert isinstance(entry.duration, float)
        assert entry.context["component"] == "db"

    @pytest.mark.asyncio
    async def test_time_accepts_sync_callable_and_awaitable(self, debug_logger):
        async def coro():
            return "awaited"

        assert await debug_logger.time("sync", lambda: "plain") == "plain"
        assert await debug_logger.time("awaitable", coro()) == "awaited"

    @pytest.mark.asyncio
    async def test_time_reraises_same_error(self, debug_logger, recording_transport):
        error = RuntimeError("query failed")

        def operation():
            raise error

        with pytest.raises(RuntimeError) as exc_info:
            await debug_logger.time("op", operation)

        assert exc_info.value is error
        entry = recording_transport.entries[0]
        assert entry.level is LogLevel.ERROR
        assert isinstance(entry.duration, float)
        assert entry.error.message == "query failed"
