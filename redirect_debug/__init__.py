"""
Redirect Debug - redirect and request-flow logging for Flask applications
"""

from .backtrace import StackTraceSimplifier
from .config import Configuration, ConfigurationGate, ScopedConfigStore
from .constants import APP_VERSION
from .context import RequestContext
from .extension import RedirectDebug
from .hooks import DispatchHooks, ResponseHooks, RouterHooks
from .redirect_logger import RedirectEventLogger
from .sanitizer import ArgumentSanitizer

__version__ = APP_VERSION

__all__ = [
    "RedirectDebug",
    "Configuration",
    "ConfigurationGate",
    "ScopedConfigStore",
    "RequestContext",
    "ResponseHooks",
    "DispatchHooks",
    "RouterHooks",
    "RedirectEventLogger",
    "StackTraceSimplifier",
    "ArgumentSanitizer",
]
