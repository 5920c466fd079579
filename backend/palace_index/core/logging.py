"""Logging for index operations.

Records emitted while a scan, verify or watch rescan is running carry that
operation's context (``ctx_operation``, ``ctx_root`` and friends) so JSON log
lines from concurrent workers can be grouped per run.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar, copy_context
from typing import Any, Callable, Iterator, TypeVar

import orjson

CONTEXT_PREFIX = "ctx_"

_operation_context: ContextVar[dict[str, Any]] = ContextVar("palace_log_context", default={})

T = TypeVar("T")


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Attach ``fields`` to every record logged inside the block.

    Nested blocks extend the outer context. ``None`` values are dropped.
    """
    merged = dict(_operation_context.get())
    merged.update({f"{CONTEXT_PREFIX}{key}": value for key, value in fields.items() if value is not None})
    token = _operation_context.set(merged)
    try:
        yield merged
    finally:
        _operation_context.reset(token)


def bind_context(func: Callable[..., T]) -> Callable[..., T]:
    """Run ``func`` under the caller's log context, e.g. on a pool worker thread."""
    snapshot = copy_context()

    def _run(*args: Any, **kwargs: Any) -> T:
        return snapshot.copy().run(func, *args, **kwargs)

    return _run


class OperationContextFilter(logging.Filter):
    """Copy the active operation context onto each record.

    Explicit ``extra`` fields win over the ambient context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _operation_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key.startswith(CONTEXT_PREFIX)}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context fields included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        payload.update(_context_fields(record))
        return orjson.dumps(payload, default=str).decode("utf-8")


class TextFormatter(logging.Formatter):
    """Human-readable lines with context appended as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _context_fields(record)
        if not fields:
            return line
        pairs = " ".join(f"{key[len(CONTEXT_PREFIX):]}={value}" for key, value in sorted(fields.items()))
        head, sep, tail = line.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def configure_logging(level: str | int = "INFO", use_json: bool = True) -> None:
    """Configure root logger with optional JSON formatting.

    Logs go to stderr so that CLI commands can keep stdout for JSON output.
    """
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else TextFormatter())
    handler.addFilter(OperationContextFilter())
    root.handlers = [handler]


def get_logger(name: str = "palace_index") -> logging.Logger:
    """Return configured logger, configuring root on first call."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = [
    "JsonFormatter",
    "OperationContextFilter",
    "TextFormatter",
    "bind_context",
    "configure_logging",
    "get_logger",
    "log_context",
]
