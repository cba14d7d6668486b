"""
Tests for the observability package: structured logging and hook-boundary
error handling.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

# ── Structured Logging ───────────────────────────────────────────


def _record(msg="Hello %s", args=("world",), level=logging.INFO, context=None, exc_info=None):
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )
    if context is not None:
        record.context = context
    return record


class TestStructuredLogging:
    """Tests for redirect_debug.observability.logging."""

    def test_setup_structured_logger_returns_logger(self, tmp_path):
        from redirect_debug.observability.logging import setup_structured_logger

        logger = setup_structured_logger("test_obs_log", "test_obs.log", log_dir=tmp_path)
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test_obs_log"
        assert (tmp_path / "test_obs.log").exists()

    def test_json_formatter_output(self):
        from redirect_debug.observability.logging import _JsonFormatter

        data = json.loads(_JsonFormatter().format(_record()))
        assert data["message"] == "Hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert "timestamp" in data
        assert "service" in data
        assert "version" in data
        assert "context" not in data

    def test_json_formatter_includes_context(self):
        from redirect_debug.observability.logging import _JsonFormatter

        record = _record("REDIRECT DETECTED", None, context={"status_code": 302, "redirect_url": "/x"})
        data = json.loads(_JsonFormatter().format(record))
        assert data["context"] == {"status_code": 302, "redirect_url": "/x"}

    def test_json_formatter_stringifies_unknown_values(self):
        from redirect_debug.observability.logging import _JsonFormatter

        record = _record("obj", None, context={"value": object()})
        data = json.loads(_JsonFormatter().format(record))
        assert data["context"]["value"].startswith("<object object")

    def test_json_formatter_includes_exception(self):
        from redirect_debug.observability.logging import _JsonFormatter

        try:
            raise ValueError("test error")
        except ValueError:
            import sys

            record = _record("Something broke", None, logging.ERROR, exc_info=sys.exc_info())
        data = json.loads(_JsonFormatter().format(record))
        assert "exception" in data
        assert data["error_type"] == "ValueError"
        assert data["line"] == 1

    def test_dev_formatter_output(self):
        from redirect_debug.observability.logging import _DevFormatter

        output = _DevFormatter().format(_record("hello dev", None, context={"uri": "/a"}))
        assert "hello dev" in output
        assert "INFO" in output
        assert '{"uri": "/a"}' in output

    def test_structured_logger_debug_mode(self, tmp_path):
        from redirect_debug.observability.logging import setup_structured_logger

        logger = setup_structured_logger(
            "test_debug_obs", "test_debug_obs.log", debug=True, log_dir=tmp_path
        )
        assert logger.level == logging.DEBUG

    def test_log_dir_from_environment(self, tmp_path, monkeypatch):
        from redirect_debug.observability.logging import setup_structured_logger

        monkeypatch.setenv("REDIRECT_DEBUG_LOG_DIR", str(tmp_path))
        setup_structured_logger("test_env_dir_obs", "env_dir.log")
        assert (tmp_path / "env_dir.log").exists()

    def test_file_lines_are_json(self, tmp_path):
        from redirect_debug.observability.logging import EventLogger, setup_structured_logger

        logger = setup_structured_logger("test_file_obs", "file_obs.log", log_dir=tmp_path)
        EventLogger(logger).info("REDIRECT DETECTED", {"status_code": 301})
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

        line = (tmp_path / "file_obs.log").read_text().strip()
        data = json.loads(line)
        assert data["message"] == "REDIRECT DETECTED"
        assert data["context"] == {"status_code": 301}


class TestEventLogger:
    """Tests for the (message, context) facade."""

    def test_context_attached_to_record(self, recorder):
        from redirect_debug.observability.logging import EventLogger

        EventLogger(recorder.logger).info("hello", {"a": 1})
        assert recorder.records[0].context == {"a": 1}

    def test_debug_skipped_above_debug_level(self, recorder):
        from redirect_debug.observability.logging import EventLogger

        recorder.logger.setLevel(logging.INFO)
        EventLogger(recorder.logger).debug("quiet", {"a": 1})
        assert recorder.records == []

    def test_error_has_no_context(self, recorder):
        from redirect_debug.observability.logging import EventLogger

        EventLogger(recorder.logger).error("Error logging redirect: boom")
        assert recorder.messages(logging.ERROR) == ["Error logging redirect: boom"]

    def test_wrapping_an_event_logger_shares_logger(self, recorder):
        from redirect_debug.observability.logging import EventLogger

        inner = EventLogger(recorder.logger)
        assert EventLogger(inner).logger is recorder.logger


# ── Error handling ───────────────────────────────────────────────


class TestResult:
    """Tests for redirect_debug.observability.errors.Result."""

    def test_capture_success(self):
        from redirect_debug.observability.errors import capture

        result = capture(lambda x: x * 2, 21)
        assert result.ok
        assert result.value == 42

    def test_capture_failure(self):
        from redirect_debug.observability.errors import capture

        result = capture(int, "nope")
        assert not result.ok
        assert "invalid literal" in result.error
        assert result.unwrap_or(-1) == -1

    def test_failure_without_message_uses_type_name(self):
        from redirect_debug.observability.errors import Result

        assert Result.failure(KeyError()).error == "KeyError"


class _Hooked:
    def __init__(self, event_logger):
        self.event_logger = event_logger

    def _boom(self):
        raise RuntimeError("boom")

    def _ok(self, value):
        return value


class TestGuardHook:
    """Tests for redirect_debug.observability.errors.guard_hook."""

    def test_passes_return_value_through(self, event_logger, recorder):
        from redirect_debug.observability.errors import guard_hook

        method = guard_hook("Error logging redirect")(_Hooked._ok)
        assert method(_Hooked(event_logger), "kept") == "kept"
        assert recorder.records == []

    def test_failure_logged_once_and_default_returned(self, event_logger, recorder):
        from redirect_debug.observability.errors import guard_hook

        method = guard_hook("Error logging redirect", default="fallback")(_Hooked._boom)
        assert method(_Hooked(event_logger)) == "fallback"
        assert recorder.messages() == ["Error logging redirect: boom"]

    def test_broken_error_sink_is_dropped(self):
        from redirect_debug.observability.errors import guard_hook

        sink = MagicMock()
        sink.error.side_effect = OSError("disk full")
        method = guard_hook("Error logging redirect")(_Hooked._boom)
        assert method(_Hooked(sink)) is None
        sink.error.assert_called_once_with("Error logging redirect: boom")

    def test_base_exceptions_propagate(self, event_logger):
        from redirect_debug.observability.errors import guard_hook

        def interrupted(self):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            guard_hook("Error logging redirect")(interrupted)(_Hooked(event_logger))

    def test_report_failure_without_logger(self, caplog):
        from redirect_debug.observability.errors import report_failure

        with caplog.at_level(logging.ERROR, logger="redirect_debug.observability.errors"):
            report_failure(None, "Error logging route match", ValueError("bad"))
        assert "Error logging route match: bad" in caplog.text
