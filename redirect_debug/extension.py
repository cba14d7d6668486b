"""
Flask integration: installs the interception handlers on an app.

Extension points used:

1. ``before_request`` -> ``DispatchHooks.before_dispatch``
2. ``after_request`` -> ``DispatchHooks.after_dispatch`` then
   ``ResponseHooks.before_send_response``
3. ``app.redirect`` (what ``flask.redirect`` calls) -> ``ResponseHooks.before_redirect``
4. ``app.create_url_adapter`` -> every ``MapAdapter.match`` goes through
   ``RouterHooks.around_match``

The host's responses, redirects and match results are passed through
untouched.
"""

import logging
from typing import Any, Callable, Optional, Union

from flask import Flask, g, has_app_context, has_request_context, request

from .config import ConfigurationGate, ScopedConfigStore
from .constants import DEFAULT_REDIRECT_CODE, LOG_FILE_NAME, LOGGER_NAME
from .context import RequestContext
from .hooks import DispatchHooks, RedirectFlag, ResponseHooks, RouterHooks
from .observability.logging import EventLogger, setup_structured_logger

EXTENSION_KEY = "redirect_debug"
_FLAG_ATTR = "_redirect_debug_detected"


class _RequestScopedFlag(RedirectFlag):
    """Redirect marker kept on ``flask.g`` and tied to one request.

    ``g`` belongs to the app context, which several requests can share, so
    the marker records which request object it was set for.
    """

    def is_set(self) -> bool:
        if not has_request_context():
            return False
        return g.get(_FLAG_ATTR) is request._get_current_object()

    def set(self) -> None:
        if has_request_context():
            setattr(g, _FLAG_ATTR, request._get_current_object())

    def clear(self) -> None:
        if has_app_context():
            g.pop(_FLAG_ATTR, None)


class _TracedMapAdapter:
    """``MapAdapter`` proxy whose ``match`` runs through the router hooks."""

    def __init__(self, adapter, hooks: RouterHooks, http_request):
        self._adapter = adapter
        self._hooks = hooks
        self._request = http_request

    def match(self, *args, **kwargs):
        return self._hooks.around_match(
            self._adapter,
            lambda _request: self._adapter.match(*args, **kwargs),
            self._request,
        )

    def __getattr__(self, item: str):
        return getattr(self._adapter, item)


class RedirectDebug:
    """Flask extension: logs redirects and request flow.

    Usage::

        app.config["DEBUG_REDIRECT"] = {"enabled": True, "log_request_data": True}
        RedirectDebug(app)

    Args:
        app: The Flask application (or call ``init_app`` later).
        logger: A ``logging.Logger`` or ``EventLogger``.  Defaults to the
            structured ``debug_redirect`` JSON logger.
        store: Config store; defaults to a live view of ``app.config``.
        scope_provider: Returns the config scope id for the current request.
        root_path: Backtrace files are reported relative to this directory;
            defaults to ``app.root_path``.
    """

    def __init__(
        self,
        app: Optional[Flask] = None,
        *,
        logger: Union[logging.Logger, EventLogger, None] = None,
        store: Any = None,
        scope_provider: Optional[Callable[[], Optional[str]]] = None,
        root_path: Optional[str] = None,
    ):
        self.logger = logger
        self.store = store
        self.scope_provider = scope_provider
        self.root_path = root_path
        self.app: Optional[Flask] = None
        if app is not None:
            self.init_app(app)

    # ── installation ─────────────────────────────────────────────

    def init_app(self, app: Flask) -> None:
        self.app = app
        logger = self.logger
        if logger is None:
            logger = setup_structured_logger(
                LOGGER_NAME,
                LOG_FILE_NAME,
                debug=True,
                log_dir=app.config.get("DEBUG_REDIRECT_LOG_DIR"),
            )
        event_logger = EventLogger(logger)
        root_path = self.root_path or app.root_path

        self.gate = ConfigurationGate(
            self.store or ScopedConfigStore.from_flask(app),
            request_provider=lambda: self._current_context(app),
            scope_provider=self.scope_provider,
        )
        self.response_hooks = ResponseHooks(
            self.gate, event_logger, root_path=root_path, redirect_flag=_RequestScopedFlag()
        )
        self.dispatch_hooks = DispatchHooks(self.gate, event_logger, root_path=root_path)
        self.router_hooks = RouterHooks(self.gate, event_logger, root_path=root_path)

        self._install(app)
        app.extensions[EXTENSION_KEY] = self

    def _install(self, app: Flask) -> None:
        app.before_request(self._before)
        app.after_request(self._after)

        original_redirect = app.redirect

        def redirect(location, code=DEFAULT_REDIRECT_CODE):
            response = original_redirect(location, code=code)
            self.response_hooks.before_redirect(response, location)
            return response

        app.redirect = redirect

        original_create_url_adapter = app.create_url_adapter

        def create_url_adapter(http_request):
            adapter = original_create_url_adapter(http_request)
            if adapter is None or http_request is None:
                return adapter
            return _TracedMapAdapter(adapter, self.router_hooks, http_request)

        app.create_url_adapter = create_url_adapter

    # ── hooks ────────────────────────────────────────────────────

    def _before(self) -> None:
        self.response_hooks.redirect_flag.clear()
        self.dispatch_hooks.before_dispatch()

    def _after(self, response):
        self.dispatch_hooks.after_dispatch(None, response)
        self.response_hooks.before_send_response(response)
        return response

    @staticmethod
    def _current_context(app: Optional[Flask]) -> Optional[RequestContext]:
        if not has_request_context():
            return None
        return RequestContext.from_request(request, app)
