"""
Structured logging for tiercache.

Store operations are logged with their name, duration and, on failure,
the error code and context. The console gets rich output; log files
always get one JSON object per line.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from tiercache.shared.errors import ErrorContext, TierCacheError

# LogRecord attributes copied into the JSON line when present
STRUCTURED_FIELDS = ("error_code", "context", "operation", "duration_ms", "result_info")

_CONSOLE_THEME = Theme(
    {
        "logging.level.debug": "cyan",
        "logging.level.info": "green",
        "logging.level.warning": "yellow",
        "logging.level.error": "red bold",
        "log.time": "dim cyan",
        "log.path": "dim blue",
    }
)


class StructuredFormatter(logging.Formatter):
    """Renders a record, plus any structured extras, as a JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in STRUCTURED_FIELDS
            if hasattr(record, field)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_structured_logger(
    name: str = "tiercache",
    level: str = "INFO",
    log_file: str | None = None,
    *,
    use_rich_console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger, replacing any handlers it already has.

    Args:
        name: Logger name
        level: Level name such as ``"DEBUG"``
        log_file: Also write JSON lines to this file
        use_rich_console: Rich output on stderr; JSON lines otherwise

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    console_handler: logging.Handler
    if use_rich_console:
        console_handler = RichHandler(
            console=Console(theme=_CONSOLE_THEME, stderr=True),
            markup=False,
            rich_tracebacks=True,
            log_time_format="[%H:%M:%S]",
        )
        console_handler.setLevel(log_level)
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def _context_to_dict(context: dict[str, Any] | ErrorContext | None) -> dict[str, Any]:
    if context is None:
        return {}
    if isinstance(context, ErrorContext):
        return context.safe_dict()
    return dict(context)


def log_operation_error(
    logger: logging.Logger,
    error: TierCacheError,
    operation: str | None = None,
    additional_context: dict[str, Any] | ErrorContext | None = None,
) -> None:
    """Log a TierCacheError at error level.

    ``additional_context`` is merged over the error's own context; the
    traceback of ``original_error`` is attached when there is one.
    """
    context = {**error.context.safe_dict(), **_context_to_dict(additional_context)}
    logger.error(
        error.message,
        extra={
            "error_code": error.code.name,
            "context": context,
            "operation": operation or error.context.operation,
        },
        exc_info=error.original_error is not None,
    )


def log_operation_success(
    logger: logging.Logger,
    operation: str,
    duration_ms: float,
    result_info: dict[str, Any] | None = None,
    context: dict[str, Any] | ErrorContext | None = None,
) -> None:
    logger.debug(
        "%s finished in %.2fms",
        operation,
        duration_ms,
        extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "result_info": result_info or {},
            "context": _context_to_dict(context),
        },
    )


def log_validation_error(
    logger: logging.Logger,
    field: str,
    value: Any,
    reason: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Log a rejected key, group or expiration at warning level."""
    logger.warning(
        "Rejected %s %r: %s",
        field,
        value,
        reason,
        extra={
            "error_code": "VALIDATION_ERROR",
            "context": {"field": field, "value": repr(value), "reason": reason, **(context or {})},
            "operation": (context or {}).get("operation", "validation"),
        },
    )
