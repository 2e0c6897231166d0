"""Logging for the calendar sync service.

Every record passes through :class:`RedactionFilter` before it is formatted.
Bearer tokens, webhook signatures, OAuth codes and Nylas credentials are
reduced to a short preview, both in the message text and in structured
``extra_fields``. Production emits one JSON object per line; other
environments use a readable single-line format.
"""

import json
import logging
import re
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

from calendar_sync.config import get_settings

ROOT_LOGGER = "calendar_sync"

# Request ID context variable for correlating log lines and error bodies
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Keys whose values never reach a log line in full (compared lower-cased)
SENSITIVE_KEYS = frozenset(
    [
        "authorization",
        "x-nylas-signature",
        "apikey",
        "access_token",
        "client_secret",
        "code",
        "service_role_key",
        "webhook_secret",
    ]
)

_BEARER_RE = re.compile(r"(?i)(bearer\s+)([A-Za-z0-9\-._~+/]+=*)")
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(access_token|client_secret|x-nylas-signature|apikey)(\s*[=:]\s*[\"']?)([^\s\"',&}]+)"
)

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """Short preview of a token or signature that is safe to log."""
    if not value:
        return "<none>"
    if len(value) <= visible:
        return "***"
    return f"{value[:visible]}..."


def redact_text(text: str) -> str:
    """Mask bearer tokens and ``key=value`` credentials inside free text."""
    text = _BEARER_RE.sub(lambda m: m.group(1) + mask_secret(m.group(2)), text)
    return _KEY_VALUE_RE.sub(lambda m: m.group(1) + m.group(2) + mask_secret(m.group(3)), text)


def redact(value: Any) -> Any:
    """Recursively mask sensitive entries of dicts and lists."""
    if isinstance(value, dict):
        return {
            key: mask_secret(str(item)) if str(key).lower() in SENSITIVE_KEYS and item else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    if isinstance(value, str):
        return redact_text(value)
    return value


class RedactionFilter(logging.Filter):
    """Scrubs credentials from a record and stamps it with the current request ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_text(message)
        if redacted != message:
            record.msg = redacted
            record.args = None

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            record.extra_fields = redact(extra_fields)

        record.request_id = request_id_var.get() or "N/A"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "N/A":
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = redact_text(self.formatException(record.exc_info))

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def setup_logging() -> logging.Logger:
    """Configure the service's root logger once; later calls return it unchanged."""
    settings = get_settings()
    logger = logging.getLogger(ROOT_LOGGER)
    if getattr(logger, "_calendar_sync_configured", False):
        return logger

    level = getattr(logging, settings.log_level)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RedactionFilter())
    if settings.is_production:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATEFMT))
    logger.addHandler(handler)
    logger.propagate = False

    # httpx logs full request URLs, which may carry OAuth codes
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    logger._calendar_sync_configured = True  # type: ignore[attr-defined]
    logger.info(
        f"Logging configured: level={settings.log_level}, "
        f"format={'JSON' if settings.is_production else 'text'}"
    )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the service's root logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def set_request_id(request_id: Optional[str]) -> None:
    """Set the request ID for the current context."""
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    """Get the current request ID."""
    return request_id_var.get()


def log_request(method: str, path: str, status_code: int, duration_ms: float, **kwargs: Any) -> None:
    """Log a completed HTTP request. The query string is never logged (callbacks carry ``code``)."""
    get_logger("http").info(
        f"{method} {path} - {status_code} - {duration_ms:.2f}ms",
        extra={
            "extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs,
            }
        },
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an error with its traceback and request context."""
    get_logger("error").error(
        f"Error: {type(error).__name__}: {error}",
        exc_info=error,
        extra={
            "extra_fields": {
                "error_type": type(error).__name__,
                "context": context or {},
            }
        },
    )
