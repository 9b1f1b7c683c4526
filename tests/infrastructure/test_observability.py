"""Structured Logging - tests for the formatters and handler setup."""

import json
import logging

import pytest

from palette.config import LogFormat
from palette.infrastructure.observability import (
    ContextTextFormatter, JSONFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "palette.test", logging.INFO, __file__, 1, "Search completed", None, None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_includes_known_extras():
    line = JSONFormatter().format(_record(session_id="s1", request_seq=3, result_count=2))
    payload = json.loads(line)
    assert payload["message"] == "Search completed"
    assert payload["level"] == "INFO"
    assert payload["session_id"] == "s1"
    assert payload["request_seq"] == 3
    assert payload["result_count"] == 2


def test_json_formatter_skips_unknown_and_missing_extras():
    payload = json.loads(JSONFormatter().format(_record(secret="x")))
    assert "secret" not in payload
    assert "query" not in payload


def test_json_timestamp_is_the_record_time():
    record = _record()
    record.created = 0.0
    payload = json.loads(JSONFormatter().format(record))
    assert payload["timestamp"] == "1970-01-01T00:00:00+00:00"


def test_text_formatter_appends_context():
    line = ContextTextFormatter().format(_record(session_id="s1", query="ana"))
    assert line.endswith("palette.test: Search completed [session_id=s1 query='ana']")


def test_text_formatter_without_context_is_plain():
    assert ContextTextFormatter().format(_record()).endswith("Search completed")


def test_setup_logging_replaces_its_own_handler(restore_root_logger):
    first = setup_logging("DEBUG", LogFormat.JSON)
    second = setup_logging("INFO", "text")
    root = restore_root_logger
    assert first not in root.handlers
    assert second in root.handlers
    assert isinstance(second.formatter, ContextTextFormatter)
    assert root.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
