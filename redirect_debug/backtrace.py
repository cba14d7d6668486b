"""
Call stack capture and simplification.

Walks the live frame chain from the caller outward and reduces each frame
to ``{file, line, function, class}``.  Frames from this package are
dropped so the first reported frame is the code that caused the event.
"""

import inspect
import os
import sys
from typing import Any, Dict, Iterable, List, Optional

from .constants import OBJECT_CLASS_PREFIXES, PACKAGE_NAMESPACE
from .observability.errors import Result, capture
from .sanitizer import ArgumentSanitizer, class_path, identity_token


class StackTraceSimplifier:
    """Captures simplified backtraces.

    Args:
        root_path: Application root; frame files under it are reported
            relative to it.
        object_class_prefixes: Receiving objects whose class path starts
            with one of these are referenced in full backtraces.
        sanitizer: Used for frame arguments in full backtraces.
    """

    def __init__(
        self,
        root_path: Optional[str] = None,
        object_class_prefixes: Iterable[str] = OBJECT_CLASS_PREFIXES,
        sanitizer: Optional[ArgumentSanitizer] = None,
        skip_namespace: str = PACKAGE_NAMESPACE,
    ):
        self.root_path = os.path.abspath(root_path) if root_path else None
        self.object_class_prefixes = tuple(object_class_prefixes)
        self.sanitizer = sanitizer or ArgumentSanitizer()
        self.skip_namespace = skip_namespace

    def capture(self, limit: int, with_args_and_objects: bool = False) -> List[Dict[str, Any]]:
        """Return at most *limit* frames, innermost first."""
        limit = max(1, int(limit))
        frames: List[Dict[str, Any]] = []
        frame = sys._getframe(1)
        try:
            while frame is not None and len(frames) < limit:
                if not self._is_own_frame(frame):
                    frames.append(self._describe(frame, with_args_and_objects))
                frame = frame.f_back
        finally:
            del frame
        return frames

    def capture_safe(
        self, limit: int, with_args_and_objects: bool = False
    ) -> Result[List[Dict[str, Any]]]:
        return capture(self.capture, limit, with_args_and_objects)

    # ── frame helpers ────────────────────────────────────────────

    def _is_own_frame(self, frame) -> bool:
        module = frame.f_globals.get("__name__", "")
        return module == self.skip_namespace or module.startswith(self.skip_namespace + ".")

    def _describe(self, frame, with_args_and_objects: bool) -> Dict[str, Any]:
        receiver = _receiver(frame)
        if receiver is None:
            class_name = ""
        elif isinstance(receiver, type):
            class_name = f"{receiver.__module__}.{receiver.__qualname__}"
        else:
            class_name = class_path(receiver)

        item: Dict[str, Any] = {
            "file": self._relative(frame.f_code.co_filename),
            "line": frame.f_lineno,
            "function": frame.f_code.co_name,
            "class": class_name,
        }
        if not with_args_and_objects:
            return item

        args = _arguments(frame)
        if args:
            item["args"] = self.sanitizer.sanitize_arguments(args)
        if (
            receiver is not None
            and not isinstance(receiver, type)
            and class_name.startswith(self.object_class_prefixes)
        ):
            item["object_class"] = class_name
            item["object_id"] = identity_token(receiver)
        return item

    def _relative(self, filename: str) -> str:
        if self.root_path and filename.startswith(self.root_path + os.sep):
            return filename[len(self.root_path) + 1:]
        return filename


def _receiver(frame) -> Any:
    """The ``self``/``cls`` a method frame runs on, else ``None``."""
    code = frame.f_code
    if code.co_argcount == 0 or code.co_varnames[0] not in ("self", "cls"):
        return None
    return frame.f_locals.get(code.co_varnames[0])


def _arguments(frame) -> List[Any]:
    info = inspect.getargvalues(frame)
    names = [n for n in info.args if n not in ("self", "cls")]
    values = [info.locals[n] for n in names if n in info.locals]
    if info.varargs and info.varargs in info.locals:
        values.append(info.locals[info.varargs])
    if info.keywords and info.keywords in info.locals:
        values.append(info.locals[info.keywords])
    return values
