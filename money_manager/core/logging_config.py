"""
Structured logging configuration.

This module sets up application-wide logging with:
- JSON output (one object per line) or a plain console format
- Output to stdout or to a file
- Bound loggers carrying structured fields (operation, user_id, ...)
- Redaction of secret-looking fields (passwords, password hashes, tokens)

Usage:
    from money_manager.core.logging_config import get_logger

    logger = get_logger(__name__, component="user_repository")
    logger.error("failed to create user", extra={"error": str(exc)})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple


# Attributes present on every LogRecord; anything else came from `extra`.
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
})

_SECRET_MARKERS = ("password", "passhash", "secret", "token", "api_key")

REDACTED = "***REDACTED***"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        fields[key] = REDACTED if _is_secret(key) else value
    return fields


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as single-line JSON objects:
    - timestamp: ISO 8601, UTC
    - level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - message: Log message
    - logger: Logger name
    - caller: module:line of the log call
    - exception: Formatted traceback (if exc_info was given)
    - every field passed through ``extra`` or bound on a BoundLogger

    Example output:
        {"timestamp": "2026-01-15T10:30:00.123456+00:00", "level": "INFO",
         "message": "user created", "logger": "money_manager.repositories.user",
         "caller": "user:88", "operation": "create", "user_id": 42}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "caller": f"{record.module}:{record.lineno}",
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        for key, value in _extra_fields(record).items():
            log_data.setdefault(key, value)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter that appends structured fields as key=value."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += "\t" + " ".join(f"{key}={value}" for key, value in fields.items())
        return line


class BoundLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying structured fields.

    Fields bound on the adapter are attached to every record; per-call
    ``extra`` values win over bound ones.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(extra or {}))

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> "BoundLogger":
        """Return a child logger with additional bound fields."""
        return BoundLogger(self.logger, {**self.extra, **fields})


def resolve_level(level: str) -> int:
    """Map a level name to a logging constant, INFO when unknown."""
    return _LEVELS.get(level.lower(), logging.INFO)


def setup_logging(
    level: str = "info",
    encoding: str = "json",
    output_path: str = "",
) -> None:
    """
    Configure application logging.

    Sets up the root logger with a single handler writing either to
    stdout or to ``output_path``, using JSON or console formatting.

    Args:
        level: debug, info, warn, error (unknown values fall back to info)
        encoding: "json" or "console"
        output_path: Log file path; stdout when empty

    Raises:
        OSError: If the log file cannot be opened

    Note:
        Call this once at application startup, before any logging occurs.
    """
    root_logger = logging.getLogger()
    log_level = resolve_level(level)
    root_logger.setLevel(log_level)

    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
        existing.close()

    if output_path:
        handler: logging.Handler = logging.FileHandler(output_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if encoding == "console":
        handler.setFormatter(ConsoleFormatter())
    else:
        handler.setFormatter(JSONFormatter())

    root_logger.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str, **fields: Any) -> BoundLogger:
    """
    Get a bound logger.

    Args:
        name: Logger name (usually __name__ of the module)
        **fields: Structured fields attached to every record

    Example:
        logger = get_logger(__name__, component="pool")
        logger.info("pool connected", extra={"max_connections": 25})
    """
    return BoundLogger(logging.getLogger(name), fields)


def flush_logging() -> None:
    """Flush every root handler; call before process exit."""
    for handler in logging.getLogger().handlers:
        handler.flush()
