"""Structured logging helpers: thread-local context and call tracing."""

import functools
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional

_thread_local = threading.local()

# Key fragments whose values are redacted before logging
SENSITIVE_FIELDS = {
    "password",
    "token",
    "secret",
    "private_key",
    "credentials",
    "authorization",
}


def new_run_id() -> str:
    """Create an identifier that ties together the logs of one billing run."""
    return uuid.uuid4().hex[:12]


def current_context() -> Dict[str, Any]:
    """Return a copy of the fields active in this thread."""
    return dict(getattr(_thread_local, "context", {}))


class LogContext:
    """
    Context manager that attaches fields to every record logged in its scope.

    Contexts nest; leaving one restores the fields of the enclosing one.
    The fields are thread-local, so worker threads start without them.

    Example:
        with LogContext(project_id="P-1", month="2026-01"):
            logger.info("Billing project")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._saved: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "LogContext":
        self._saved = current_context()
        merged = dict(self._saved)
        merged.update(self.fields)
        _thread_local.context = merged
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _thread_local.context = self._saved or {}


class _ContextFilter(logging.Filter):
    """Copy the thread's LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in getattr(_thread_local, "context", {}).items():
            setattr(record, key, value)
        return True


def sanitize_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Redact values whose key looks like a credential.

    Nested dictionaries are processed recursively; the input is not modified.

    Example:
        >>> sanitize_sensitive_data({"google_private_key": "abc", "debug": True})
        {'google_private_key': '***REDACTED***', 'debug': True}
    """
    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        if any(fragment in key.lower() for fragment in SENSITIVE_FIELDS):
            sanitized[key] = None if value is None else "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_sensitive_data(value)
        else:
            sanitized[key] = value
    return sanitized


def log_function_call(
    func: Optional[Callable] = None, *, include_args: bool = False, level: str = "DEBUG"
) -> Callable:
    """
    Decorator that logs entry, exit with elapsed time, and exceptions.

    Usable bare (``@log_function_call``) or with options
    (``@log_function_call(level="INFO")``).

    Args:
        func: Function to decorate (bare usage)
        include_args: Include the call arguments in the entry message
        level: Level for entry and exit messages
    """

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)
            log_level = getattr(logging, level.upper())

            if include_args:
                parts = [repr(a) for a in args]
                parts.extend(f"{k}={v!r}" for k, v in kwargs.items())
                logger.log(log_level, f"Entering {f.__name__}({', '.join(parts)})")
            else:
                logger.log(log_level, f"Entering {f.__name__}")

            started = time.perf_counter()
            try:
                result = f(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Exception in {f.__name__}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            elapsed = time.perf_counter() - started
            logger.log(log_level, f"Exiting {f.__name__} after {elapsed:.3f}s")
            return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)
