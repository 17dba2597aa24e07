"""
Unit tests for stl_quote.logging_config module.

Tests:
- JSON formatter output
- Console formatter output
- Logging setup
- Timing utilities
- Context fields
"""

import json
import logging
import sys
import threading
from io import StringIO

import pytest

from stl_quote.logging_config import (
    ConsoleFormatter,
    ContextFieldsFilter,
    JSONFormatter,
    LogContext,
    configure_default_logging,
    get_logger,
    log_timing,
    setup_logging,
    timed,
)


def _record(name="test", level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


def _capturing_logger(name):
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.handlers = [handler]
    return logger, stream


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_format(self):
        data = json.loads(JSONFormatter().format(_record(name="stl_quote.io.stl_loader")))

        assert data["level"] == "INFO"
        assert data["logger"] == "stl_quote.io.stl_loader"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "location" not in data

    def test_extra_fields(self):
        record = _record()
        record.file = "bracket.stl"
        record.faces = 1200

        data = json.loads(JSONFormatter().format(record))

        assert data["file"] == "bracket.stl"
        assert data["faces"] == 1200

    def test_extra_fields_disabled(self):
        record = _record()
        record.file = "bracket.stl"

        data = json.loads(JSONFormatter(include_extra=False).format(record))
        assert "file" not in data

    def test_unserializable_extra(self):
        record = _record()
        record.path = object()

        data = json.loads(JSONFormatter().format(record))
        assert isinstance(data["path"], str)

    def test_location_for_warning(self):
        data = json.loads(JSONFormatter().format(_record(level=logging.WARNING)))

        assert data["location"]["line"] == 10
        assert data["location"]["file"] == "test.py"

    def test_exception_format(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError" in data["exception"]

    def test_unicode_message(self):
        data = json.loads(JSONFormatter().format(_record(msg="Ø 10 mm, ±0.1, 90°")))
        assert data["message"] == "Ø 10 mm, ±0.1, 90°"


class TestConsoleFormatter:
    """Tests for ConsoleFormatter class."""

    def test_prefix_stripped(self):
        result = ConsoleFormatter(use_colors=False).format(
            _record(name="stl_quote.pricing.estimator", msg="Cost estimated")
        )

        assert "INFO" in result
        assert " pricing.estimator: " in result
        assert "stl_quote." not in result
        assert "Cost estimated" in result

    def test_extra_fields_shown(self):
        record = _record()
        record.total_cost = 118.8
        record.faces = 12

        result = ConsoleFormatter(use_colors=False).format(record)

        assert "total_cost=119" in result
        assert "faces=12" in result

    def test_long_list_collapsed(self):
        record = _record()
        record.dims = [1, 2, 3, 4, 5]

        result = ConsoleFormatter(use_colors=False).format(record)
        assert "dims=[...5 items]" in result

    def test_colors(self):
        record = _record(level=logging.ERROR)

        assert "\033[" not in ConsoleFormatter(use_colors=False).format(record)
        assert "\033[31m" in ConsoleFormatter(use_colors=True).format(record)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_returns_package_logger(self):
        logger = setup_logging(level=logging.DEBUG, console=False)

        assert logger.name == "stl_quote"
        assert logger.level == logging.DEBUG
        assert not logger.propagate

    def test_console_handler_added(self):
        logger = setup_logging(console=True)
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(console=True)
        logger = setup_logging(console=True)
        assert len(logger.handlers) == 1

    def test_json_file_handler(self, tmp_path):
        json_path = tmp_path / "quote.log.json"
        logger = setup_logging(json_file=json_path, console=False)

        get_logger("stl_quote.pricing").info("Quote ready", extra={"total_cost": 118.8})
        for handler in logger.handlers:
            handler.flush()

        data = json.loads(json_path.read_text(encoding="utf-8").strip())
        assert data["message"] == "Quote ready"
        assert data["logger"] == "stl_quote.pricing"
        assert data["total_cost"] == 118.8

    def test_context_reaches_child_loggers(self, tmp_path):
        """LogContext fields are attached by the handler filter."""
        json_path = tmp_path / "ctx.log.json"
        logger = setup_logging(json_file=json_path, console=False)

        with LogContext(request_id="abc123"):
            get_logger("stl_quote.service").info("Analyzing")
        for handler in logger.handlers:
            handler.flush()

        data = json.loads(json_path.read_text(encoding="utf-8").strip())
        assert data["request_id"] == "abc123"

    def test_default_logging(self):
        assert configure_default_logging(verbose=True).level == logging.DEBUG
        assert configure_default_logging().level == logging.INFO


class TestLogTiming:
    """Tests for log_timing context manager."""

    def test_logs_start_and_complete(self):
        logger, stream = _capturing_logger("timing_test")

        with log_timing(logger, "test operation"):
            pass

        output = stream.getvalue()
        assert "Starting: test operation" in output
        assert "Completed: test operation" in output

    def test_timing_info_updated(self):
        logger, _ = _capturing_logger("timing_test2")

        with log_timing(logger, "operation") as timing_info:
            pass

        assert timing_info["elapsed_seconds"] >= 0

    def test_error_logged_on_exception(self):
        logger, stream = _capturing_logger("timing_test3")

        with pytest.raises(ValueError):
            with log_timing(logger, "failing operation"):
                raise ValueError("Test error")

        output = stream.getvalue()
        assert "ERROR: Failed: failing operation" in output
        assert "Test error" in output


class TestTimedDecorator:
    """Tests for timed decorator."""

    def test_function_executed(self):
        logger, stream = _capturing_logger("timed_test")

        @timed(logger=logger)
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert "Completed: add" in stream.getvalue()

    def test_preserves_metadata(self):
        @timed(operation="custom")
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."


class TestLogContext:
    """Tests for LogContext."""

    def test_fields_added(self):
        with LogContext(request_id="r1", file="a.stl"):
            assert LogContext.current() == {"request_id": "r1", "file": "a.stl"}
        assert LogContext.current() == {}

    def test_nested(self):
        with LogContext(request_id="outer", file="a.stl"):
            with LogContext(request_id="inner"):
                assert LogContext.current() == {"request_id": "inner", "file": "a.stl"}
            assert LogContext.current()["request_id"] == "outer"

    def test_reset_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext(request_id="r1"):
                raise RuntimeError("boom")
        assert LogContext.current() == {}

    def test_thread_isolation(self):
        seen = []

        def worker():
            seen.append(LogContext.current())

        with LogContext(request_id="main"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == [{}]

    def test_filter_does_not_override_record(self):
        record = _record()
        record.request_id = "explicit"

        with LogContext(request_id="context", file="a.stl"):
            assert ContextFieldsFilter().filter(record)

        assert record.request_id == "explicit"
        assert record.file == "a.stl"
