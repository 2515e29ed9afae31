"""Logging utilities for ReadLater.

Log lines carry context fields prefixed with ``ctx_``. They come from two
places: ``extra={"ctx_url": ...}`` on a single call, or :func:`log_context`,
which binds fields for everything logged inside the block (a request, a sync
run). Per-call extras win over bound fields.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

import orjson

_DEFAULT_LEVEL = os.environ.get("RLP_LOG_LEVEL", "INFO")
_CONTEXT: ContextVar[dict[str, Any]] = ContextVar("readlater_log_context", default={})


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Bind ``ctx_<name>`` fields to every record logged inside the block."""
    bound = {**_CONTEXT.get(), **{f"ctx_{name}": value for name, value in fields.items() if value is not None}}
    token = _CONTEXT.set(bound)
    try:
        yield bound
    finally:
        _CONTEXT.reset(token)


class ContextFilter(logging.Filter):
    """Copy bound context onto records without overriding per-call extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _CONTEXT.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line with a UTC timestamp and the ``ctx_*`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                payload[key] = value
        return orjson.dumps(payload, default=str).decode("utf-8")


class ContextTextFormatter(logging.Formatter):
    """Plain-text lines with bound context appended as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = " ".join(f"{key[4:]}={value}" for key, value in record.__dict__.items() if key.startswith("ctx_"))
        return f"{line} [{ctx}]" if ctx else line


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool = True) -> None:
    """Configure root logger with optional JSON formatting."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if use_json else ContextTextFormatter())
    root.handlers = [handler]


def get_logger(name: str = "readlater") -> logging.Logger:
    """Return configured logger, configuring root on first call."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = [
    "ContextFilter",
    "ContextTextFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
    "log_context",
]
