"""Logging utilities with JSON formatting, redaction, and request correlation.

Registry API keys arrive in request bodies and headers on every call, so the
handler installed here redacts them wherever they could surface:
- structured ``extra`` fields whose name is sensitive (``apiKey``, ``credential``...)
- nested mappings and sequences inside those fields
- string values carrying a bearer token

The request id set by the middleware is attached to every record through a
context variable.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Compared case-insensitively against extra field names and nested mapping keys
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "apikey",
        "api_key",
        "x-api-key",
        "credential",
        "authorization",
        "token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
    }
)

_BEARER_RE = re.compile(r"(?i)bearer\s+\S+")

# Standard LogRecord attributes never copied into the JSON payload
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable."""
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Fetch the current request id from context."""
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def redact(value: Any, sensitive_keys: frozenset[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Recursively redact sensitive values within mappings, sequences and strings.

    Args:
        value: Arbitrary value from log record extras.
        sensitive_keys: Lower-cased key names that must be redacted.

    Returns:
        The value with sensitive entries replaced by ``[REDACTED]``.
    """
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive_keys else redact(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, sensitive_keys) for v in value)
    if isinstance(value, str) and _BEARER_RE.search(value):
        return _BEARER_RE.sub(f"Bearer {REDACTED}", value)
    return value


def record_extras(
    record: LogRecord, sensitive_keys: frozenset[str] = SENSITIVE_KEYS_DEFAULT
) -> dict[str, Any]:
    """Return the record's ``extra`` fields, redacted."""
    return {
        key: redact({key: value}, sensitive_keys)[key]
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive fields on the record before any formatter sees it."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in record_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        if isinstance(record.msg, str):
            record.msg = redact(record.msg, self.sensitive_keys)
        return True


class JsonFormatter(logging.Formatter):
    """Format LogRecord as a single JSON line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = False,
    ) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": redact(record.getMessage(), self.sensitive_keys),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(record_extras(record, self.sensitive_keys))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct a stdout or (rotating) file handler from configuration."""

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/app.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Configure root logger with JSON formatter and redaction.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    level = logging.DEBUG if settings.app.debug else getattr(
        logging, cfg.level.upper(), logging.INFO
    )
    handler = _build_handler(cfg)

    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format.lower() == "plain":
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = JsonFormatter()

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
