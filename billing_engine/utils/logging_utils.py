"""Structured logging utilities with context support."""

import functools
import logging
import threading
import uuid
from typing import Any, Callable, Dict, Optional

# Per-thread structured fields; scheduler workers each get their own.
_local = threading.local()


def _current_context() -> Dict[str, Any]:
    context = getattr(_local, "context", None)
    if context is None:
        context = {}
        _local.context = context
    return context


def generate_correlation_id() -> str:
    """Return a fresh UUID4 string for tying related log lines together."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID of the active LogContext, if any."""
    return _current_context().get("correlation_id")


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(_current_context())


class LogContext:
    """
    Attach structured fields to every log record emitted within a block.

    Contexts nest: inner fields are merged over outer ones and the outer
    state is restored on exit, even when the block raises.

    Example:
        with LogContext(project_id="P1", contract_id="K7"):
            logger.info("Calculating retainer overage")
            # record carries project_id and contract_id
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._saved: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "LogContext":
        context = _current_context()
        self._saved = dict(context)
        context.update(self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _local.context = self._saved if self._saved is not None else {}


class _ContextFilter(logging.Filter):
    """Copy the active LogContext fields onto each record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _current_context().items():
            setattr(record, key, value)
        return True


def log_function_call(
    func: Optional[Callable] = None, *, include_args: bool = False, level: str = "DEBUG"
) -> Callable:
    """
    Decorator that logs entry to and exit from a function.

    Exceptions are logged with traceback at ERROR level and re-raised.

    Args:
        func: Function to decorate (when used without arguments)
        include_args: Whether to include call arguments in the entry line
        level: Log level for the entry/exit lines

    Example:
        @log_function_call
        def run_sweep():
            ...

        @log_function_call(include_args=True, level="INFO")
        def calculate_hourly(project_id, start, end, config):
            ...
    """
    log_level = getattr(logging, level.upper())

    def decorator(f: Callable) -> Callable:
        logger = logging.getLogger(f.__module__)

        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            if include_args:
                rendered = [repr(a) for a in args]
                rendered += [f"{k}={v!r}" for k, v in kwargs.items()]
                logger.log(log_level, f"Entering {f.__name__}({', '.join(rendered)})")
            else:
                logger.log(log_level, f"Entering {f.__name__}")

            try:
                result = f(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Exception in {f.__name__}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                raise

            logger.log(log_level, f"Exiting {f.__name__}")
            return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)
