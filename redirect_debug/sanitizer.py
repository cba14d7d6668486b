"""
Argument sanitizer for backtrace frames and logged values.

Classifies each value by kind, truncates long strings and containers, and
masks secrets (passwords, authorization headers, bearer tokens, API keys,
tokens, secrets) before anything reaches a log line.
"""

import io
import re
import socket
from collections.abc import Mapping, Set
from typing import Any, Dict, List, Pattern, Tuple

from .constants import (
    MASK,
    MAX_ARRAY_ITEMS,
    MAX_NESTED_STRING_LENGTH,
    MAX_STRING_LENGTH,
    NESTED_TRUNCATED_SUFFIX,
    TRUNCATED_SUFFIX,
)

# Each pattern keeps its key/prefix in group 1 and masks the value after it.
_SENSITIVE_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"(password=)[^&]*", re.IGNORECASE), r"\1" + MASK),
    (re.compile(r"(authorization:\s*).+", re.IGNORECASE), r"\1" + MASK),
    (re.compile(r"(bearer\s+).+", re.IGNORECASE), r"\1" + MASK),
    (re.compile(r"(api[_-]?key=)[^&]*", re.IGNORECASE), r"\1" + MASK),
    (re.compile(r"(token=)[^&]*", re.IGNORECASE), r"\1" + MASK),
    (re.compile(r"(secret=)[^&]*", re.IGNORECASE), r"\1" + MASK),
]

_ARRAY_TYPES = (list, tuple, Set, Mapping)
_RESOURCE_TYPES = (io.IOBase, socket.socket)


def mask_sensitive(text: str) -> str:
    """Apply all sensitive-data patterns to *text* and return the result."""
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def identity_token(obj: Any) -> str:
    """Opaque per-object token, stable for the object's lifetime."""
    return f"{id(obj):016x}"


def class_path(obj: Any) -> str:
    cls = type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_builtin(value: Any) -> bool:
    return type(value).__module__ == "builtins"


class ArgumentSanitizer:
    """Turns arbitrary call arguments into small, log-safe values.

    Args:
        sanitize_sensitive: Mask secrets in strings.  When off, strings are
            only truncated.
    """

    def __init__(self, sanitize_sensitive: bool = True):
        self.sanitize_sensitive = sanitize_sensitive

    def sanitize_arguments(self, args) -> List[Any]:
        return [self.sanitize(arg) for arg in args]

    def sanitize(self, value: Any) -> Any:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            return {"type": "string", "length": len(value), "value": self.sanitize_string(value)}
        if isinstance(value, _ARRAY_TYPES):
            return {"type": "array", "count": len(value), "contents": self._sanitize_array(value)}
        if isinstance(value, _RESOURCE_TYPES):
            return {"type": "resource", "resource_type": type(value).__name__}
        if not _is_builtin(value):
            return {"type": "object", "class": class_path(value), "object_id": identity_token(value)}
        return type(value).__name__

    def sanitize_string(self, value: str) -> str:
        """Mask (when enabled) then cut to the string limit."""
        if self.sanitize_sensitive:
            value = mask_sensitive(value)
        if len(value) > MAX_STRING_LENGTH:
            value = value[:MAX_STRING_LENGTH] + TRUNCATED_SUFFIX
        return value

    # ── containers ───────────────────────────────────────────────

    def _sanitize_array(self, value) -> Any:
        if isinstance(value, Mapping):
            items = [(str(k), v) for k, v in value.items()]
            contents: Dict[str, Any] = {}
            for index, (key, item) in enumerate(items):
                if index >= MAX_ARRAY_ITEMS:
                    contents[key] = TRUNCATED_SUFFIX
                    break
                contents[key] = self._sanitize_nested(item)
            return contents

        listed: List[Any] = []
        for index, item in enumerate(value):
            if index >= MAX_ARRAY_ITEMS:
                listed.append(TRUNCATED_SUFFIX)
                break
            listed.append(self._sanitize_nested(item))
        return listed

    def _sanitize_nested(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int, float)):
            return self.sanitize(value)
        if isinstance(value, str):
            if self.sanitize_sensitive:
                return self.sanitize_string(value)
            if len(value) > MAX_NESTED_STRING_LENGTH:
                return value[:MAX_NESTED_STRING_LENGTH] + NESTED_TRUNCATED_SUFFIX
            return value
        if isinstance(value, _ARRAY_TYPES):
            return f"array({len(value)})"
        if isinstance(value, _RESOURCE_TYPES):
            return f"resource({type(value).__name__})"
        if not _is_builtin(value):
            return f"object({class_path(value)})"
        return type(value).__name__
