"""
Assembly of ``REDIRECT DETECTED`` records.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from .backtrace import StackTraceSimplifier
from .config import Configuration
from .constants import DEFAULT_REDIRECT_CODE, NOT_AVAILABLE, REDIRECT_METHOD_SUFFIX
from .context import RequestContext
from .observability.errors import report_failure
from .observability.logging import EventLogger
from .sanitizer import ArgumentSanitizer

REDIRECT_MESSAGE = "REDIRECT DETECTED"


def location_header(response) -> Optional[str]:
    """The response's ``Location`` value, or ``None`` if absent or unreadable."""
    try:
        value = response.headers.get("Location")
    except Exception:
        return None
    return str(value) if value else None


class RedirectEventLogger:
    """Builds a redirect record and writes it through the event logger."""

    def __init__(self, event_logger: EventLogger, root_path: Optional[str] = None):
        self.event_logger = event_logger
        self.root_path = root_path

    def log_redirect(
        self,
        response,
        configuration: Configuration,
        context: RequestContext,
        status_code: Optional[int] = None,
        redirect_url: Optional[str] = None,
    ) -> None:
        try:
            record = self.build_record(response, configuration, context, status_code, redirect_url)
            self.event_logger.info(REDIRECT_MESSAGE, record)
        except Exception as exc:
            report_failure(self.event_logger, "Error logging redirect", exc)

    def build_record(
        self,
        response,
        configuration: Configuration,
        context: RequestContext,
        status_code: Optional[int] = None,
        redirect_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "status_code": status_code or _explicit_status(response),
            "current_url": context.uri,
            "redirect_url": redirect_url or location_header(response) or NOT_AVAILABLE,
            "module": context.module_name,
            "controller": context.controller_name,
            "action": context.action_name,
            "full_action": context.full_action_name,
        }

        if configuration.log_request_data:
            record["request_params"] = dict(context.params)
            record["request_method"] = context.method
            record["http_referer"] = context.referer
            record["user_agent"] = context.user_agent
            record["ip_address"] = context.client_ip

        if configuration.log_backtrace:
            record["full_backtrace"] = self._full_backtrace(configuration)

        return record

    def _full_backtrace(self, configuration: Configuration) -> Union[list, Dict[str, str]]:
        simplifier = StackTraceSimplifier(
            root_path=self.root_path,
            sanitizer=ArgumentSanitizer(configuration.sanitize_sensitive),
        )
        result = simplifier.capture_safe(configuration.backtrace_limit, with_args_and_objects=True)
        return result.value if result.ok else {"error": result.error}


def _explicit_status(response) -> str:
    code = getattr(response, "status_code", None)
    if not isinstance(code, int):
        code = DEFAULT_REDIRECT_CODE
    return f"{code} {REDIRECT_METHOD_SUFFIX}"
