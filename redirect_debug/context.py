"""
Plain snapshots of the current request and of a route match.

Hooks copy everything they need out of the live Flask/werkzeug objects
into these records; the originals may be recycled once the hook returns.
"""

from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class RequestContext:
    """Read-only copy of the request fields the loggers report."""

    uri: str = ""
    path: str = ""
    method: str = ""
    front_name: str = ""
    module_name: str = ""
    controller_name: str = ""
    action_name: str = ""
    full_action_name: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    params_loader: Optional[Callable[[], Dict[str, Any]]] = field(
        default=None, repr=False, compare=False
    )
    referer: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None

    @classmethod
    def from_request(cls, request, app=None) -> "RequestContext":
        """Snapshot a Flask request.

        Args:
            request: The ``flask.Request`` (or any werkzeug request with the
                Flask routing attributes).
            app: The Flask app, used to look up the matched view function.
        """
        path = request.path or "/"
        endpoint = getattr(request, "endpoint", None) or ""
        view = app.view_functions.get(endpoint) if app is not None and endpoint else None
        view_class = getattr(view, "view_class", None)

        if view_class is not None:
            controller = view_class.__name__
            action = request.method.lower()
        else:
            controller = getattr(view, "__name__", "") if view is not None else ""
            action = endpoint.rpartition(".")[2]

        return cls(
            uri=request_uri(request),
            path=path,
            method=request.method,
            front_name=front_name(path),
            module_name=getattr(request, "blueprint", None) or "",
            controller_name=controller,
            action_name=action,
            full_action_name=endpoint,
            params_loader=partial(request_params, request),
            referer=request.headers.get("Referer"),
            user_agent=request.headers.get("User-Agent"),
            client_ip=request.remote_addr,
        )

    def with_params(self) -> "RequestContext":
        """Copy with ``params`` filled in from the live request.

        Reading the form touches the request body, so snapshots leave it to
        ``params_loader`` until a hook knows it is going to log.
        """
        if self.params_loader is None:
            return self
        return replace(self, params=self.params_loader(), params_loader=None)


@dataclass(frozen=True)
class RouteMatch:
    """Copy of a ``(Rule, view_args)`` match result."""

    rule: str
    endpoint: str
    module_name: str
    action_name: str
    params: Dict[str, Any]
    result_class: str

    @classmethod
    def from_result(cls, result) -> "RouteMatch":
        if isinstance(result, tuple) and len(result) == 2:
            target, args = result
        else:
            target, args = result, {}
        endpoint = getattr(target, "endpoint", target)
        endpoint = endpoint if isinstance(endpoint, str) else repr(endpoint)
        module, _, action = endpoint.rpartition(".")
        return cls(
            rule=getattr(target, "rule", str(target)),
            endpoint=endpoint,
            module_name=module,
            action_name=action,
            params=dict(args or {}),
            result_class=type(target).__name__,
        )


_FORM_MIMETYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


def front_name(path: str) -> str:
    """First path segment, the framework's "front name" (``""`` for ``/``)."""
    return path.lstrip("/").split("/", 1)[0]


def request_uri(request) -> str:
    """Path plus query string, as the client requested it."""
    query = request.query_string.decode("utf-8", "replace") if request.query_string else ""
    return f"{request.path}?{query}" if query else request.path


def request_params(request) -> Dict[str, Any]:
    """Route args, query args and form fields merged into a fresh dict.

    The raw body is cached before the form is parsed so the view can still
    call ``request.get_data()``.
    """
    params: Dict[str, Any] = {}
    if request.mimetype in _FORM_MIMETYPES:
        request.get_data(cache=True)
    params.update(getattr(request, "view_args", None) or {})
    for source in (request.args, request.form):
        for key in source:
            values = source.getlist(key)
            params[key] = values[0] if len(values) == 1 else list(values)
    return params
