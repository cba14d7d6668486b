"""
Test fixtures and configuration for pytest
"""

import itertools
import logging

import pytest

_logger_ids = itertools.count()


class RecordingHandler(logging.Handler):
    """Keeps every emitted record in memory."""

    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)

    def messages(self, level=None):
        return [r.getMessage() for r in self.records if level is None or r.levelno == level]

    def find(self, message):
        return [r for r in self.records if r.getMessage() == message]


@pytest.fixture
def recorder():
    """A fresh, non-propagating DEBUG logger with a recording handler."""
    logger = logging.getLogger(f"redirect_debug_test.{next(_logger_ids)}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = RecordingHandler()
    logger.addHandler(handler)
    handler.logger = logger
    yield handler
    logger.removeHandler(handler)


@pytest.fixture
def event_logger(recorder):
    from redirect_debug.observability.logging import EventLogger

    return EventLogger(recorder.logger)


@pytest.fixture
def redirect_options():
    """Base options with logging switched on."""
    return {
        "enabled": True,
        "exclude_admin": False,
        "log_backtrace": False,
        "log_request_data": False,
        "backtrace_limit": 15,
        "sanitize_sensitive_data": True,
    }


@pytest.fixture
def make_store():
    """Build a ScopedConfigStore from a flat ``debug/redirect`` options dict."""
    from redirect_debug.config import ScopedConfigStore

    def _make(options, scopes=None):
        return ScopedConfigStore(
            {"debug": {"redirect": dict(options)}},
            {k: {"debug": {"redirect": dict(v)}} for k, v in (scopes or {}).items()},
        )

    return _make
