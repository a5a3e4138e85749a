"""Logging configuration.

Console output plus optional rotating files (general, errors, access). Records are
enriched from contextvars bound by the request middleware, and JSON output picks up
the collaboration fields services pass through `extra=`.
"""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[Optional[int]] = ContextVar("user_id", default=None)
ip_ctx: ContextVar[Optional[str]] = ContextVar("ip_address", default=None)

_CONTEXT_VARS = (
    ("request_id", request_id_ctx),
    ("user_id", user_id_ctx),
    ("ip_address", ip_ctx),
)

# record attribute -> JSON key
_EXTRA_FIELDS = {
    "request_id": "request_id",
    "user_id": "user_id",
    "ip_address": "ip_address",
    "method": "method",
    "endpoint": "endpoint",
    "status_code": "status_code",
    "duration": "duration_ms",
    "error_code": "error_code",
    "collaboration_id": "collaboration_id",
    "actor_id": "actor_id",
    "action": "action",
}

_LINE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_ACCESS_FORMAT = (
    "%(asctime)s | %(method)s %(endpoint)s | %(status_code)s | "
    "%(duration)sms | %(ip_address)s"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        for attribute, key in _EXTRA_FIELDS.items():
            value = getattr(record, attribute, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class ContextEnricher(logging.Filter):
    """Copy bound contextvars onto records that don't carry them already."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attribute, var in _CONTEXT_VARS:
            value = var.get()
            if value is not None and not hasattr(record, attribute):
                setattr(record, attribute, value)
        return True


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    user_id: Optional[int] = None,
    ip_address: Optional[str] = None,
):
    """Bind request context; returns tokens for `reset_request_context`."""
    values = {"request_id": request_id, "user_id": user_id, "ip_address": ip_address}
    return [
        (var, var.set(values[name]))
        for name, var in _CONTEXT_VARS
        if values[name] is not None
    ]


def reset_request_context(tokens) -> None:
    for var, token in reversed(tokens):
        var.reset(token)


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _file_handler(
    path: Path, level: int, formatter: logging.Formatter, max_bytes: int, backup_count: int
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8", delay=True
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    app_name: str = "memestack",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    use_json: bool = False,
    use_colors: bool = True,
) -> None:
    """Configure the root and access loggers.

    Args:
        log_level: Minimum level for the root logger and console.
        log_dir: Directory for rotating files; console only when None.
        app_name: Prefix for log file names.
        max_bytes: Size at which a file rotates.
        backup_count: Rotated files to keep.
        use_json: Write files as JSON lines instead of plain text.
        use_colors: Colorize console level names.
    """
    level = getattr(logging, log_level.upper())
    enricher = ContextEnricher()

    root = logging.getLogger()
    root.setLevel(level)
    _close_handlers(root)
    for existing in [f for f in root.filters if isinstance(f, ContextEnricher)]:
        root.removeFilter(existing)
    root.addFilter(enricher)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console_cls = ColoredFormatter if use_colors else logging.Formatter
    console.setFormatter(console_cls(_LINE_FORMAT, datefmt=_DATE_FORMAT))
    console.addFilter(enricher)
    root.addHandler(console)

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        def file_formatter(fmt: str) -> logging.Formatter:
            return JSONFormatter() if use_json else logging.Formatter(fmt, datefmt=_DATE_FORMAT)

        for suffix, file_level in (("", logging.DEBUG), ("_error", logging.ERROR)):
            handler = _file_handler(
                directory / f"{app_name}{suffix}.log",
                file_level,
                file_formatter(_LINE_FORMAT),
                max_bytes,
                backup_count,
            )
            handler.addFilter(enricher)
            root.addHandler(handler)

        access = logging.getLogger("access")
        _close_handlers(access)
        access.addHandler(
            _file_handler(
                directory / f"{app_name}_access.log",
                logging.INFO,
                file_formatter(_ACCESS_FORMAT),
                max_bytes,
                backup_count,
            )
        )
        access.setLevel(logging.INFO)
        access.propagate = False

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level} dir={log_dir or 'console only'}"
    )


def log_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    ip_address: str,
    user_id: Optional[int] = None,
    request_id: Optional[str] = None,
) -> None:
    """Write one access record; `user_id` is set once the auth dependency resolved a user."""
    extra = {
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "duration": f"{duration_ms:.2f}",
        "ip_address": ip_address,
    }
    if user_id:
        extra["user_id"] = user_id
    if request_id:
        extra["request_id"] = request_id

    logging.getLogger("access").info(
        f"{method} {endpoint} - {status_code} - {duration_ms:.2f}ms", extra=extra
    )
