"""Logging setup: JSON lines for machines, short plain lines for terminals."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any

import orjson

_DEFAULT_LEVEL = os.environ.get("LIVEDOC_LOG_LEVEL", "INFO")
_CONTEXT_PREFIX = "ctx_"
_NOISY_LOGGERS = ("watchdog",)


def document_context(path: Any, line: int | None = None) -> dict[str, Any]:
    """``extra=`` payload tying a record to a document (and optionally a line)."""
    context: dict[str, Any] = {f"{_CONTEXT_PREFIX}document": str(path)}
    if line is not None:
        context[f"{_CONTEXT_PREFIX}line"] = line
    return context


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key[len(_CONTEXT_PREFIX) :]: value
        for key, value in record.__dict__.items()
        if key.startswith(_CONTEXT_PREFIX)
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``ctx_*`` extras land under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _context_fields(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


class PlainFormatter(logging.Formatter):
    """``WARNING docs/a.md:12 message`` style lines for the CLI."""

    def format(self, record: logging.LogRecord) -> str:
        context = _context_fields(record)
        location = context.get("document")
        if location is not None and "line" in context:
            location = f"{location}:{context['line']}"
        prefix = f"{record.levelname} {location} " if location else f"{record.levelname} "
        text = prefix + record.getMessage()
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def configure_logging(
    level: str | int = _DEFAULT_LEVEL,
    use_json: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Install a single root handler (stderr by default)."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else PlainFormatter())
    root.handlers = [handler]
    # watchdog logs every emitted event at DEBUG
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)


def get_logger(name: str = "livedoc") -> logging.Logger:
    """Return a named logger, configuring the root logger on first use."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "PlainFormatter", "configure_logging", "document_context", "get_logger"]
