"""Tests for structured logging setup."""
import io
import json
import logging

import pytest
import structlog

from faceauth.core.logging import get_logger, setup_logging


@pytest.fixture
def log_stream():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    stream = io.StringIO()
    yield stream
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def json_lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_events_carry_fields(log_stream):
    setup_logging(level="info", stream=log_stream, json_logs=True)

    get_logger("faceauth.tests").info("Stored template", identity="alice", descriptors=1)

    [event] = [e for e in json_lines(log_stream) if e["event"] == "Stored template"]
    assert event["identity"] == "alice"
    assert event["descriptors"] == 1
    assert event["level"] == "info"
    assert event["logger"] == "faceauth.tests"
    assert "timestamp" in event


def test_stdlib_records_share_the_format(log_stream):
    setup_logging(level="INFO", stream=log_stream, json_logs=True)

    logging.getLogger("some.library").warning("plain message")

    [event] = [e for e in json_lines(log_stream) if e["event"] == "plain message"]
    assert event["level"] == "warning"
    assert event["logger"] == "some.library"


def test_model_runtime_loggers_are_quieted(log_stream):
    setup_logging(level="DEBUG", stream=log_stream, json_logs=True)

    logging.getLogger("onnxruntime").info("loading session")

    assert "loading session" not in log_stream.getvalue()
    assert logging.getLogger("insightface").level == logging.WARNING


def test_level_filters_events(log_stream):
    setup_logging(level="WARNING", stream=log_stream, json_logs=True)

    get_logger("faceauth.tests").info("hidden")
    get_logger("faceauth.tests").warning("shown")

    events = [e["event"] for e in json_lines(log_stream)]
    assert "shown" in events
    assert "hidden" not in events
