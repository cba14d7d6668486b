"""
Observability package: structured logging and hook-boundary error handling.

Provides:
- ``setup_structured_logger``: JSON-formatted logging to file and console
- ``EventLogger``: ``(message, context)`` facade used by every hook
- ``Result`` / ``guard_hook``: failure containment for hooks and helpers
"""

from .errors import Result, guard_hook, report_failure
from .logging import EventLogger, setup_structured_logger

__all__ = [
    "EventLogger",
    "setup_structured_logger",
    "Result",
    "guard_hook",
    "report_failure",
]
