"""Logging setup for the todo-mcp server.

stdout carries the MCP protocol when running over stdio, so every handler
configured here writes to stderr. Records are enriched with the request
correlation ID by ``ContextFilter`` and rendered either as newline-delimited
JSON (``StructuredFormatter``) or as a short human-readable line.

Usage:
    from todo_mcp.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="human")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from todo_mcp.core.context import get_client_id, get_correlation_id, get_start_time

__all__ = [
    "ContextFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "configure_logging",
]

ROOT_LOGGER_NAME = "todo_mcp"

# LogRecord attributes that are never copied into "extra"
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
        "correlation_id",
        "client_id",
        "elapsed_ms",
    }
)


class ContextFilter(logging.Filter):
    """Inject ``correlation_id``, ``client_id`` and ``elapsed_ms`` into records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.client_id = get_client_id() or "anonymous"

        start_time = get_start_time()
        if start_time > 0:
            record.elapsed_ms = round((record.created - start_time) * 1000, 2)
        else:
            record.elapsed_ms = 0.0

        return True


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter.

    Example output:
        {"timestamp":"2024-01-15T10:30:45.123+00:00","level":"INFO",
         "logger":"todo_mcp.core.todo","message":"Todo created",
         "correlation_id":"tool_a1b2c3d4e5f6","client_id":"anonymous",
         "elapsed_ms":0.4}
    """

    def __init__(self, *, include_extra: bool = True, include_exception: bool = True):
        super().__init__()
        self.include_extra = include_extra
        self.include_exception = include_exception

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "client_id": getattr(record, "client_id", "anonymous"),
            "elapsed_ms": getattr(record, "elapsed_ms", 0.0),
        }

        if self.include_exception and record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {}
            for key, value in record.__dict__.items():
                if key in _STANDARD_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter producing ``TIMESTAMP [LEVEL] [correlation_id] logger: message``."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname}]",
        ]

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        logger_name = record.name
        if logger_name.startswith(ROOT_LOGGER_NAME + "."):
            logger_name = logger_name[len(ROOT_LOGGER_NAME) + 1 :]
        parts.append(f"{logger_name}:")
        parts.append(record.getMessage())

        result = " ".join(parts)
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    format: str = "structured",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the ``todo_mcp`` logger.

    Calling this again replaces the previously installed handler.

    Args:
        level: Log level name or number
        format: "structured" for JSON, "human" for readable lines
        stream: Output stream (default: stderr)

    Returns:
        The configured ``todo_mcp`` logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())
    handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    return logger
