"""
Error containment at hook boundaries.

Internal helpers return a ``Result`` instead of raising; public hook
methods are wrapped with ``guard_hook`` so a failure turns into one
error-level log line and a safe return value.  Nothing raised inside the
extension reaches the host application's request pipeline.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

_log = logging.getLogger(__name__)


# ── Result ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an internal helper: either a value or an error message."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: BaseException) -> "Result[T]":
        return cls(error=str(exc) or type(exc).__name__)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default


def capture(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Result[T]:
    """Call *fn* and wrap its return value or exception in a ``Result``."""
    try:
        return Result.success(fn(*args, **kwargs))
    except Exception as exc:
        return Result.failure(exc)


# ── Hook guard ───────────────────────────────────────────────────


def guard_hook(message: str, default: Any = None):
    """Decorator for hook methods that must never raise.

    The wrapped method's instance is expected to expose ``event_logger``
    (an ``EventLogger``).  On failure a single ``"<message>: <error>"`` line
    is written at error level and *default* is returned.  If even the
    error log fails the failure is dropped.

    Usage::

        @guard_hook("Error logging redirect")
        def before_redirect(self, response, url): ...
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            try:
                return fn(self, *args, **kwargs)
            except Exception as exc:
                report_failure(getattr(self, "event_logger", None), message, exc)
                return default

        return wrapper

    return decorator


def report_failure(event_logger: Any, message: str, exc: BaseException) -> None:
    """Write ``"<message>: <exc>"`` to *event_logger*, dropping secondary errors."""
    try:
        if event_logger is not None:
            event_logger.error(f"{message}: {exc}")
        else:
            _log.error("%s: %s", message, exc)
    except Exception:
        _log.debug("Dropped failure report for %s", message, exc_info=True)
