"""
Configuration loading and the per-request configuration gate.

Settings live in a scoped key-value store addressed by slash paths such as
``debug/redirect/enabled``.  A store holds a ``default`` section and
optional per-scope overrides::

    {
        "default": {"debug": {"redirect": {"enabled": true}}},
        "scopes": {"store_fr": {"debug": {"redirect": {"enabled": false}}}}
    }

Every hook call asks the ``ConfigurationGate`` for a fresh ``Configuration``
snapshot; nothing is cached across requests.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .constants import (
    ADMIN_FRONT_NAME,
    CONFIG_PATH_BACKTRACE_LIMIT,
    CONFIG_PATH_ENABLED,
    CONFIG_PATH_EXCLUDE_ADMIN,
    CONFIG_PATH_LOG_BACKTRACE,
    CONFIG_PATH_LOG_REQUEST_DATA,
    CONFIG_PATH_SANITIZE_SENSITIVE,
    CONFIG_SECTION,
    DEFAULT_BACKTRACE_LIMIT,
    FLASK_CONFIG_KEY,
    FLASK_SCOPES_KEY,
    KNOWN_OPTIONS,
)
from .context import RequestContext

logger = logging.getLogger(__name__)

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


# ── Configuration snapshot ───────────────────────────────────────


@dataclass(frozen=True)
class Configuration:
    """Immutable settings for a single hook invocation."""

    enabled: bool = False
    exclude_admin: bool = False
    log_backtrace: bool = False
    log_request_data: bool = False
    backtrace_limit: int = DEFAULT_BACKTRACE_LIMIT
    sanitize_sensitive: bool = True

    @classmethod
    def disabled(cls) -> "Configuration":
        return cls()


# ── Scoped store ─────────────────────────────────────────────────


class ScopedConfigStore:
    """Read-only scoped key-value store over nested mappings."""

    def __init__(
        self,
        default: Optional[Mapping[str, Any]] = None,
        scopes: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ):
        self._default = default or {}
        self._scopes = scopes or {}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ScopedConfigStore":
        """Build a store from a ``{"default": ..., "scopes": ...}`` document."""
        return cls(data.get("default", {}), data.get("scopes", {}))

    @classmethod
    def from_file(cls, config_path: str) -> "ScopedConfigStore":
        return cls.from_mapping(load_config(config_path))

    @classmethod
    def from_flask(cls, app) -> "ScopedConfigStore":
        """Build a store that reads ``app.config`` on every lookup.

        ``app.config["DEBUG_REDIRECT"]`` holds the options directly
        (``{"enabled": True, ...}``); ``app.config["DEBUG_REDIRECT_SCOPES"]``
        maps scope ids to option overrides of the same shape.
        """
        return _FlaskConfigStore(app)

    def get_value(self, path: str, scope_id: Optional[str] = None) -> Any:
        if scope_id is not None:
            value = _lookup(self._scopes.get(scope_id, {}), path)
            if value is not None:
                return value
        return _lookup(self._default, path)

    def is_set_flag(self, path: str, scope_id: Optional[str] = None) -> bool:
        return _as_flag(self.get_value(path, scope_id))


class _FlaskConfigStore(ScopedConfigStore):
    """Live view over a Flask app's config."""

    def __init__(self, app):
        super().__init__()
        self._app = app

    def get_value(self, path: str, scope_id: Optional[str] = None) -> Any:
        section, _, option = path.rpartition("/")
        if section != CONFIG_SECTION:
            return None
        if scope_id is not None:
            scoped = self._app.config.get(FLASK_SCOPES_KEY, {}).get(scope_id, {})
            if scoped.get(option) is not None:
                return scoped[option]
        return self._app.config.get(FLASK_CONFIG_KEY, {}).get(option)


def _lookup(tree: Mapping[str, Any], path: str) -> Any:
    node: Any = tree
    for part in path.split("/"):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def _as_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _as_limit(value: Any) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_BACKTRACE_LIMIT
    return limit if limit > 0 else DEFAULT_BACKTRACE_LIMIT


_ENV_REF = re.compile(r"\$\{(?P<name>\w+)(?::-(?P<fallback>[^}]*))?\}")


def _env_value(match: "re.Match[str]") -> str:
    return os.environ.get(match["name"], match["fallback"] or "")


def _expand_env(node: Any) -> Any:
    if isinstance(node, str):
        return _ENV_REF.sub(_env_value, node)
    if isinstance(node, Mapping):
        return {key: _expand_env(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_expand_env(item) for item in node]
    return node


# ── Configuration gate ───────────────────────────────────────────


class ConfigurationGate:
    """Decides per hook call whether logging is active.

    Args:
        store: Any object with ``get_value(path, scope_id)`` and
            ``is_set_flag(path, scope_id)``.
        request_provider: Returns a ``RequestContext`` for the current
            request, or ``None`` outside a request.
        scope_provider: Returns the scope id for the current request.
    """

    def __init__(
        self,
        store,
        request_provider: Optional[Callable[[], Optional[RequestContext]]] = None,
        scope_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.store = store
        self.request_provider = request_provider or (lambda: None)
        self.scope_provider = scope_provider or (lambda: None)

    def load(self, scope_id: Optional[str] = None) -> Configuration:
        """Read all options for *scope_id*; any store failure disables logging."""
        if scope_id is None:
            scope_id = self.scope_provider()
        try:
            sanitize = self.store.get_value(CONFIG_PATH_SANITIZE_SENSITIVE, scope_id)
            return Configuration(
                enabled=self.store.is_set_flag(CONFIG_PATH_ENABLED, scope_id),
                exclude_admin=self.store.is_set_flag(CONFIG_PATH_EXCLUDE_ADMIN, scope_id),
                log_backtrace=self.store.is_set_flag(CONFIG_PATH_LOG_BACKTRACE, scope_id),
                log_request_data=self.store.is_set_flag(CONFIG_PATH_LOG_REQUEST_DATA, scope_id),
                backtrace_limit=_as_limit(
                    self.store.get_value(CONFIG_PATH_BACKTRACE_LIMIT, scope_id)
                ),
                sanitize_sensitive=True if sanitize is None else _as_flag(sanitize),
            )
        except Exception as exc:
            logger.warning("Redirect debug config unreadable, logging disabled: %s", exc)
            return Configuration.disabled()

    def is_admin_area(self, context: Optional[RequestContext] = None) -> bool:
        if context is None:
            context = self.request_provider()
        return context is not None and context.front_name == ADMIN_FRONT_NAME

    def active_configuration(
        self, context: Optional[RequestContext] = None
    ) -> Optional[Configuration]:
        """Return the configuration when hooks should log, else ``None``."""
        config = self.load()
        if not config.enabled:
            return None
        if config.exclude_admin and self.is_admin_area(context):
            return None
        return config


# ── Config files ─────────────────────────────────────────────────


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Read a scoped configuration document from a JSON file.

    ``.env`` in the working directory is loaded first (variables already in
    the environment win), then every ``${NAME}`` or ``${NAME:-fallback}``
    inside a string value is replaced from the environment.

    Raises:
        ConfigError: If the file is missing, is not JSON, or its root is
            not an object.
    """
    source = Path(config_path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {source}") from exc

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {source}: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigError(f"Configuration root must be an object: {source}")

    load_dotenv(find_dotenv(usecwd=True))
    return _expand_env(document)


def validate_config(config: Mapping[str, Any]) -> List[str]:
    """
    Validate a scoped configuration document.

    Returns:
        A list of human-readable error strings.  Empty means valid.
    """
    errors: List[str] = []
    sections = [("default", config.get("default", {}))]
    sections += [(f"scopes.{k}", v) for k, v in config.get("scopes", {}).items()]

    for label, tree in sections:
        options = _lookup(tree, CONFIG_SECTION)
        if options is None:
            continue
        if not isinstance(options, Mapping):
            errors.append(f"'{CONFIG_SECTION}' in {label} must be an object")
            continue
        for key in sorted(set(options) - KNOWN_OPTIONS):
            errors.append(f"Unknown option '{key}' in {label}")
        limit = options.get("backtrace_limit")
        if limit is not None:
            try:
                if int(limit) < 1:
                    errors.append(f"backtrace_limit in {label} must be positive: {limit!r}")
            except (TypeError, ValueError):
                errors.append(f"backtrace_limit in {label} is not an integer: {limit!r}")
        for key, value in options.items():
            if isinstance(value, str) and value.startswith("${"):
                errors.append(f"{CONFIG_SECTION}/{key} in {label} is an unresolved placeholder")

    return errors
