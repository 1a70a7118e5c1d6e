"""
Test module for loglog.adapters.base
"""

import uuid

import pytest

from loglog.adapters.base import (
    DEFAULT_SENSITIVE_BODY_FIELDS,
    REDACTED,
    AdapterOptions,
    LoggingAdapter,
    RequestInfo,
    ResponseInfo,
    sanitize,
)
from loglog.exceptions import ConfigurationException
from loglog.models import LogLevel


class TestSanitize:

    def test_redacts_sensitive_field_and_keeps_others(self):
        result = sanitize({"username": "alice", "password": "hunter2"}, ["password"])

        assert result == {"username": "alice", "password": REDACTED}

    def test_case_insensitive_exact_match(self):
        result = sanitize(
            {"Authorization": "Bearer x", "apikey": "k", "apiKeyHint": "keep"},
            ["authorization", "apiKey"],
        )

        assert result == {"Authorization": REDACTED, "apikey": REDACTED, "apiKeyHint": "keep"}

    def test_recurses_into_nested_data(self):
        data = {"user": {"name": "a", "token": "t"}, "items": [{"secret": "s", "id": 1}]}

        result = sanitize(data, DEFAULT_SENSITIVE_BODY_FIELDS)

        assert result == {"user": {"name": "a", "token": REDACTED}, "items": [{"secret": REDACTED, "id": 1}]}
        assert data["user"]["token"] == "t"

    def test_non_container_passthrough(self):
        assert sanitize("plain", ["password"]) == "plain"
        assert sanitize(None, ["password"]) is None


class TestAdapterOptions:

    def test_defaults(self):
        options = AdapterOptions()

        assert options.log_body and options.log_query and options.log_headers
        assert options.sensitive_headers == ["authorization", "x-api-key", "cookie", "password"]
        assert options.sensitive_body_fields == ["password", "token", "apiKey", "secret", "credential"]

    def test_camel_case_names(self):
        options = AdapterOptions.from_kwargs(excludePaths=["/health"], logBody=False)

        assert options.exclude_paths == ["/health"]
        assert options.log_body is False

    def test_unknown_option(self):
        with pytest.raises(ConfigurationException, match="logEverything"):
            AdapterOptions.from_kwargs(logEverything=True)

    def test_unknown_options_keep_caller_spelling(self):
        with pytest.raises(ConfigurationException) as exc_info:
            AdapterOptions.from_kwargs(logBody=True, traceEverything=True, extra_field=1)

        assert exc_info.value.details == {"unknown": ["extra_field", "traceEverything"]}


class TestLoggingAdapter:

    def test_exclude_paths_match_prefix(self, debug_logger):
        adapter = LoggingAdapter(debug_logger, exclude_paths=["/health"])

        assert not adapter.should_log("/health/live")
        assert adapter.should_log("/api/health")

    def test_create_context(self, debug_logger):
        context = LoggingAdapter(debug_logger).create_context(RequestInfo(method="GET", path="/items"))

        uuid.UUID(context["requestId"])
        assert context["method"] == "GET"
        assert context["path"] == "/items"

    def test_requires_logger(self):
        with pytest.raises(ConfigurationException):
            LoggingAdapter().create_request_logger(RequestInfo(method="GET", path="/"))

    def test_request_entry_respects_switches(self, debug_logger, recording_transport):
        adapter = LoggingAdapter(debug_logger, log_headers=False, log_query=False)

        adapter.begin(RequestInfo(method="POST", path="/login", headers={"a": "b"}, query={"q": "1"},
                                  body={"password": "x"}, ip="10.0.0.1", user_agent="curl"))

        entry = recording_transport.entries[0]
        assert entry.message == "Incoming request"
        assert "headers" not in entry.context
        assert "query" not in entry.context
        assert entry.context["body"] == {"password": REDACTED}
        assert entry.context["ip"] == "10.0.0.1"
        assert entry.context["userAgent"] == "curl"

    @pytest.mark.parametrize("status,level,message", [
        (200, LogLevel.INFO, "Request completed"),
        (399, LogLevel.INFO, "Request completed"),
        (400, LogLevel.ERROR, "Request failed"),
        (503, LogLevel.ERROR, "Request failed"),
    ])
    def test_response_level_by_status(self, debug_logger, recording_transport, status, level, message):
        adapter = LoggingAdapter(debug_logger)

        adapter.log_response(debug_logger, ResponseInfo(status_code=status, duration=3.0, size=10))

        entry = recording_transport.entries[0]
        assert (entry.level, entry.message) == (level, message)
        assert entry.context["statusCode"] == status
        assert entry.context["duration"] == 3.0
        assert entry.context["responseSize"] == 10


class TestRequestLogScope:

    def test_final_entry_written_once(self, debug_logger, recording_transport):
        scope = LoggingAdapter(debug_logger).begin(RequestInfo(method="GET", path="/"))

        assert scope.complete(ResponseInfo(status_code=200)) is True
        assert scope.complete(ResponseInfo(status_code=200)) is False
        assert scope.fail(RuntimeError("late")) is False

        assert recording_transport.messages == ["Incoming request", "Request completed"]
        assert isinstance(recording_transport.entries[1].context["duration"], float)

    def test_failure_entry_carries_error(self, debug_logger, recording_transport):
        scope = LoggingAdapter(debug_logger).begin(RequestInfo(method="GET", path="/"))

        scope.fail(RuntimeError("handler crashed"))

        entry = recording_transport.entries[-1]
        assert entry.message == "Request failed"
        assert entry.context["statusCode"] == 500
        assert entry.error.message == "handler crashed"
        assert entry.context["requestId"] == scope.request_id
