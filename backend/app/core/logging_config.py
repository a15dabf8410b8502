"""
Log output for the notifier.

Two renderings of the same records:
    • JSONFormatter   — one JSON object per line; ``severity`` and
                        ``message`` are the keys Cloud Logging indexes
    • PrettyFormatter — coloured single line for a developer terminal

Round fields passed through ``extra`` (senior_id, event_kind, status, ...)
are lifted into the JSON entry and appended as ``key=value`` in pretty
mode. Per-invocation fields (request_id, emergency_id) are bound once with
``bind_log_context`` and attached to every record logged while it is set.

Usage:
    setup_logging()
    logger = get_logger(__name__)
    logger.info("Round finished", extra={"senior_id": "S1", "recipient_count": 2})
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from backend.app.core.config import settings

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

STRUCTURED_FIELDS = (
    "senior_id", "event_kind", "emergency_id", "recipient_count",
    "token_prefix", "reason", "status", "duration_ms", "status_code",
    "endpoint",
)

NOISY_LOGGERS = (
    "uvicorn.access", "httpx", "httpcore", "google.auth", "urllib3",
)


def bind_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the context of the current invocation."""
    merged = dict(_log_context.get())
    merged.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(merged)


def reset_log_context() -> None:
    _log_context.set({})


def get_log_context() -> Dict[str, Any]:
    return _log_context.get()


def _structured_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in STRUCTURED_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(get_log_context())
        entry.update(_structured_fields(record))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class PrettyFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [request] logger: message key=value ...``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        request_id = get_log_context().get("request_id")
        tag = f" [{str(request_id)[:8]}]" if request_id else ""

        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} "
            f"{record.levelname:8s}{self.RESET}{tag} {record.name}: "
            f"{record.getMessage()}"
        )
        fields = _structured_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return line


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Install one stdout handler on the root logger.

    JSON output defaults to on in production. Safe to call repeatedly;
    earlier handlers are replaced.
    """
    if json_output is None:
        json_output = settings.is_production

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else PrettyFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
