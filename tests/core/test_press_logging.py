"""Tests for structured logging and correlation ids."""

from __future__ import annotations

import json
import logging

from agentpress.core.logging import (
    JSONFormatter,
    StandardFormatter,
    configure_logging,
    correlation_context,
    get_correlation_id,
    redact,
)


def _record(message: str, *args) -> logging.LogRecord:
    return logging.LogRecord("agentpress.test", logging.INFO, __file__, 1, message, args, None)


class TestCorrelationContext:
    def test_sets_and_resets(self):
        assert get_correlation_id() is None
        with correlation_context("abc-123") as cid:
            assert cid == "abc-123"
            assert get_correlation_id() == "abc-123"
        assert get_correlation_id() is None

    def test_generates_id(self):
        with correlation_context() as cid:
            assert len(cid) == 36


class TestRedact:
    def test_masks_bearer_tokens(self):
        assert redact("Authorization: Bearer abc.def-ghi") == "Authorization: Bearer ***"

    def test_leaves_other_text(self):
        assert redact("nothing secret") == "nothing secret"


class TestJSONFormatter:
    def test_fields(self):
        with correlation_context("cid-1"):
            line = JSONFormatter().format(_record("hello %s", "world"))
        data = json.loads(line)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "agentpress.test"
        assert data["correlation_id"] == "cid-1"

    def test_request_id_extra(self):
        record = _record("GET /x")
        record.request_id = "req-9"
        assert json.loads(JSONFormatter().format(record))["request_id"] == "req-9"


class TestStandardFormatter:
    def test_prefixes_correlation_id(self):
        formatter = StandardFormatter(use_colors=False)
        with correlation_context("12345678-aaaa"):
            line = formatter.format(_record("sent Bearer secret"))
        assert "[12345678] sent Bearer ***" in line


class TestConfigureLogging:
    def test_replaces_handlers(self):
        configure_logging("DEBUG", json_format=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        configure_logging("WARNING", json_format=False)
        assert isinstance(root.handlers[0].formatter, StandardFormatter)
