"""
Structured JSON logging for redirect and request-flow events.

Each line in ``debug_redirect.log`` is one JSON object with the keys
``timestamp``, ``level``, ``logger``, ``message``, ``service`` and
``version``.  Hook payloads travel on the record as ``record.context`` and
are written under ``context``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..constants import APP_VERSION, LOG_BACKUP_COUNT, LOG_FILE_NAME, LOG_MAX_BYTES, LOGGER_NAME

# Default service name, overridable via LOG_SERVICE_NAME env var
SERVICE_NAME: str = os.environ.get("LOG_SERVICE_NAME", "redirect-debug")

LOG_DIR_ENV = "REDIRECT_DEBUG_LOG_DIR"


def _record_context(record: logging.LogRecord) -> Optional[Mapping[str, Any]]:
    context = getattr(record, "context", None)
    return context if isinstance(context, Mapping) and context else None


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


# ── JSON Formatter ───────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, hook payload nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
            "version": APP_VERSION,
        }

        # Failures inside a hook point back at the hook
        if record.levelno >= logging.ERROR:
            entry.update(func=record.funcName, line=record.lineno)

        context = _record_context(record)
        if context is not None:
            entry["context"] = context

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
            entry["error_type"] = record.exc_info[0].__name__

        return _dumps(entry)


# ── Console Formatter ────────────────────────────────────────────


_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


class _DevFormatter(logging.Formatter):
    """Coloured single-line output; redirects render as ``from -> to``."""

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        color = _LEVEL_COLORS.get(record.levelno, "")
        line = f"{color}{clock} {record.levelname:<8}{_RESET} {record.getMessage()}"

        context = _record_context(record)
        if context is not None:
            if "redirect_url" in context and "current_url" in context:
                line += f" [{context['current_url']} -> {context['redirect_url']}]"
            line += " " + _dumps(context)

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ── Event logger ─────────────────────────────────────────────────


class EventLogger:
    """Leveled ``(message, context)`` facade over a stdlib logger.

    The context mapping is attached to the record as ``record.context`` so
    formatters and test handlers can read it without parsing the message.
    """

    def __init__(self, logger: Union[logging.Logger, "EventLogger", None] = None):
        if isinstance(logger, EventLogger):
            logger = logger.logger
        self.logger = logger or setup_structured_logger(LOGGER_NAME, LOG_FILE_NAME)

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(message, extra={"context": dict(context or {})})

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self.logger.info(message, extra={"context": dict(context or {})})

    def error(self, message: str) -> None:
        self.logger.error(message)


# ── Logger Factory ───────────────────────────────────────────────


def _resolve_log_path(log_file: str, log_dir: Optional[Union[str, Path]]) -> Path:
    if log_dir is None:
        log_dir = os.environ.get(LOG_DIR_ENV) or Path.cwd() / "logs"
    path = Path(log_dir) / log_file
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _console_formatter() -> logging.Formatter:
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        return _JsonFormatter()
    return _DevFormatter()


def setup_structured_logger(
    name: str,
    log_file: str = LOG_FILE_NAME,
    *,
    level: Optional[int] = None,
    debug: bool = False,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Create (or retrieve) a structured JSON logger.

    Args:
        name: Logger name.
        log_file: Filename under *log_dir*.
        level: Explicit level (overrides *debug*).
        debug: If ``True``, sets level to ``DEBUG``.
        log_dir: Directory for the log file.  Defaults to
            ``$REDIRECT_DEBUG_LOG_DIR``, else ``logs/`` in the working
            directory.

    Returns:
        A configured ``logging.Logger``.  Calling again with the same name
        only adjusts the level of the existing handlers.
    """
    if level is None:
        level = logging.DEBUG if debug else logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    file_handler = RotatingFileHandler(
        _resolve_log_path(log_file, log_dir),
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(_JsonFormatter())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_console_formatter())

    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        logger.addHandler(handler)
    return logger
