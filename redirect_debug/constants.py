"""
Centralised constants for the redirect debug extension.

Config paths, redirect status codes, sanitizer limits and log defaults live
here so they can be imported by any module without circular dependencies.
"""

# ── Version ──────────────────────────────────────────────────────
APP_VERSION = "0.1.0"
PACKAGE_NAMESPACE = "redirect_debug"

# ── Config paths ─────────────────────────────────────────────────
CONFIG_SECTION = "debug/redirect"
CONFIG_PATH_ENABLED = "debug/redirect/enabled"
CONFIG_PATH_LOG_BACKTRACE = "debug/redirect/log_backtrace"
CONFIG_PATH_BACKTRACE_LIMIT = "debug/redirect/backtrace_limit"
CONFIG_PATH_LOG_REQUEST_DATA = "debug/redirect/log_request_data"
CONFIG_PATH_EXCLUDE_ADMIN = "debug/redirect/exclude_admin"
CONFIG_PATH_SANITIZE_SENSITIVE = "debug/redirect/sanitize_sensitive_data"

KNOWN_OPTIONS = frozenset(
    {
        "enabled",
        "log_backtrace",
        "backtrace_limit",
        "log_request_data",
        "exclude_admin",
        "sanitize_sensitive_data",
    }
)

# Flask app.config keys read by ScopedConfigStore.from_flask
FLASK_CONFIG_KEY = "DEBUG_REDIRECT"
FLASK_SCOPES_KEY = "DEBUG_REDIRECT_SCOPES"

DEFAULT_BACKTRACE_LIMIT = 15
ADMIN_FRONT_NAME = "admin"

# ── Redirects ────────────────────────────────────────────────────
REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})
DEFAULT_REDIRECT_CODE = 302
REDIRECT_METHOD_SUFFIX = "(via redirect method)"
NOT_AVAILABLE = "N/A"

# ── Flow tracing ─────────────────────────────────────────────────
DISPATCH_BEFORE_BACKTRACE_LIMIT = 10
DISPATCH_AFTER_BACKTRACE_LIMIT = 5

# ── Sanitizer ────────────────────────────────────────────────────
MAX_STRING_LENGTH = 100
MAX_NESTED_STRING_LENGTH = 50
MAX_ARRAY_ITEMS = 10
TRUNCATED_SUFFIX = "... (truncated)"
NESTED_TRUNCATED_SUFFIX = "..."
MASK = "***"

# Receiving objects of these classes are referenced in full backtraces.
OBJECT_CLASS_PREFIXES = (
    "flask.wrappers.",
    "werkzeug.wrappers.",
    "werkzeug.routing.",
    "flask.views.",
    "flask.app.",
)

# ── Logging ──────────────────────────────────────────────────────
LOG_FILE_NAME = "debug_redirect.log"
LOGGER_NAME = "debug_redirect"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per log file
LOG_BACKUP_COUNT = 5
