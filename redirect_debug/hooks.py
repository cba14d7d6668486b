"""
Interception handlers for the host framework's extension points.

Three independent handler types, one per extension point family:

* ``ResponseHooks``: before a response is sent, before an explicit redirect.
* ``DispatchHooks``: before and after the front controller dispatches.
* ``RouterHooks``: around a router's match attempt.

Every public hook first asks the ``ConfigurationGate`` whether logging is
active and returns immediately otherwise.  Hooks never raise into the
host's pipeline; ``RouterHooks.around_match`` only re-raises what its
continuation raised.
"""

from typing import Any, Callable, Optional

from werkzeug.exceptions import HTTPException
from werkzeug.routing import RoutingException

from .backtrace import StackTraceSimplifier
from .config import Configuration, ConfigurationGate
from .constants import (
    DISPATCH_AFTER_BACKTRACE_LIMIT,
    DISPATCH_BEFORE_BACKTRACE_LIMIT,
    REDIRECT_STATUS_CODES,
)
from .context import RequestContext, RouteMatch
from .observability.errors import guard_hook, report_failure
from .observability.logging import EventLogger
from .redirect_logger import RedirectEventLogger, location_header


class RedirectFlag:
    """Marks that a redirect was already logged for the current request.

    The default implementation lives on the instance, which is correct when
    the host creates handlers per request.  Hosts that share handlers across
    requests pass a request-scoped implementation instead.
    """

    def __init__(self):
        self._value = False

    def is_set(self) -> bool:
        return self._value

    def set(self) -> None:
        self._value = True

    def clear(self) -> None:
        self._value = False


class _HookBase:
    def __init__(
        self,
        gate: ConfigurationGate,
        event_logger: EventLogger,
        request_provider: Optional[Callable[[], Optional[RequestContext]]] = None,
        root_path: Optional[str] = None,
    ):
        self.gate = gate
        self.event_logger = event_logger
        self.request_provider = request_provider or gate.request_provider
        self.root_path = root_path

    def _context(self) -> RequestContext:
        return self.request_provider() or RequestContext()

    def _active(self, context: Optional[RequestContext] = None) -> Optional[Configuration]:
        return self.gate.active_configuration(context)

    def _short_backtrace(self, limit: int) -> list:
        frames = StackTraceSimplifier(root_path=self.root_path).capture_safe(limit)
        if not frames.ok:
            return [{"error": frames.error}]
        return [
            {"file": f["file"], "line": f["line"], "function": f["function"]}
            for f in frames.value
        ]


# ── Response ─────────────────────────────────────────────────────


class ResponseHooks(_HookBase):
    """Logs redirects seen on the response object."""

    def __init__(self, *args, redirect_flag: Optional[RedirectFlag] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.redirect_flag = redirect_flag or RedirectFlag()
        self.redirect_logger = RedirectEventLogger(self.event_logger, self.root_path)

    @guard_hook("Error logging redirect")
    def before_send_response(self, response) -> None:
        context = self._context()
        config = self._active(context)
        if config is None:
            return
        status_code = response.status_code
        if status_code not in REDIRECT_STATUS_CODES or self.redirect_flag.is_set():
            return
        self.redirect_logger.log_redirect(
            response, config, context.with_params(), status_code=status_code
        )

    @guard_hook("Error logging redirect")
    def before_redirect(self, response, url: str) -> None:
        """Log an explicit redirect call; never overrides its arguments."""
        context = self._context()
        config = self._active(context)
        if config is None:
            return None
        self.redirect_flag.set()
        self.redirect_logger.log_redirect(
            response, config, context.with_params(), redirect_url=url
        )
        return None


# ── Front controller ─────────────────────────────────────────────


class DispatchHooks(_HookBase):
    """Traces requests entering and leaving the front controller."""

    @guard_hook("Error logging dispatch")
    def before_dispatch(self, request: Optional[RequestContext] = None) -> None:
        context = request or self._context()
        if self._active(context) is None:
            return
        context = context.with_params()
        self.event_logger.debug(
            "FRONT CONTROLLER BEFORE",
            {
                "full_action": context.full_action_name,
                "module": context.module_name,
                "controller": context.controller_name,
                "action": context.action_name,
                "params": dict(context.params),
                "uri": context.uri,
                "method": context.method,
                "backtrace": self._short_backtrace(DISPATCH_BEFORE_BACKTRACE_LIMIT),
            },
        )

    def after_dispatch(self, request: Optional[RequestContext], result: Any) -> Any:
        """Log the dispatch result; always hands *result* back unchanged."""
        self._log_result(request, result)
        return result

    @guard_hook("Error logging dispatch")
    def _log_result(self, request: Optional[RequestContext], result: Any) -> None:
        context = request or self._context()
        if self._active(context) is None or not _is_response(result):
            return
        self.event_logger.debug(
            "FRONT CONTROLLER AFTER",
            {
                "status_code": result.status_code,
                "is_redirect": result.status_code in REDIRECT_STATUS_CODES,
                "redirect_url": location_header(result),
                "backtrace": self._short_backtrace(DISPATCH_AFTER_BACKTRACE_LIMIT),
            },
        )


def _is_response(value: Any) -> bool:
    return isinstance(getattr(value, "status_code", None), int) and hasattr(value, "headers")


# ── Router ───────────────────────────────────────────────────────


class RouterHooks(_HookBase):
    """Traces each router's match attempt without touching its outcome."""

    def around_match(self, router: Any, proceed: Callable[[Any], Any], request: Any) -> Any:
        try:
            context = self._context()
            active = self._active(context) is not None
        except Exception as exc:
            report_failure(self.event_logger, "Error logging route match", exc)
            active = False
        if not active:
            return proceed(request)

        router_name = type(router).__name__
        self._log_before(router_name, context)
        try:
            result = proceed(request)
        except (RoutingException, HTTPException):
            self._log_no_match(router_name)
            raise
        if result:
            self._log_after(router_name, result)
        else:
            self._log_no_match(router_name)
        return result

    @guard_hook("Error logging route match")
    def _log_before(self, router_name: str, context: RequestContext) -> None:
        self.event_logger.debug(
            f"ROUTER BEFORE: {router_name}",
            {"request_uri": context.uri, "path_info": context.path},
        )

    @guard_hook("Error logging route match")
    def _log_after(self, router_name: str, result: Any) -> None:
        match = RouteMatch.from_result(result)
        self.event_logger.debug(
            f"ROUTER AFTER: {router_name}",
            {
                "result_class": match.result_class,
                "rule": match.rule,
                "endpoint": match.endpoint,
                "module": match.module_name,
                "action": match.action_name,
                "params": match.params,
            },
        )

    @guard_hook("Error logging route match")
    def _log_no_match(self, router_name: str) -> None:
        self.event_logger.debug(f"ROUTER AFTER: {router_name} - NO MATCH")
