"""
Logging configuration.

Installs a single root handler, either JSON-structured (production) or a
plain console format (development). Components never share a logger object:
each one receives a ``logging.Logger`` through its constructor and falls back
to ``logging.getLogger(__name__)``.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from .context import get_context_dict


# Never logged, whatever a caller passes in ``extra``
SENSITIVE_KEYS = frozenset({"password", "token", "authorization", "secret", "jwt_secret"})

# Attributes every LogRecord carries; anything else came from ``extra``
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Format records as one JSON object per line, enriched with request context."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "caller": f"{record.module}:{record.lineno}",
        }
        log_obj.update(get_context_dict())

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.lower() in SENSITIVE_KEYS:
                continue
            log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_obj, default=str)


class RequestContextFilter(logging.Filter):
    """Expose the current request id as ``%(request_id)s`` for console output."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_context_dict().get("request_id", "-")
        return True


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure the root logger.

    Safe to call more than once: the previously installed handler is
    replaced rather than duplicated.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        fmt: "json" or "console"
    """
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "console":
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handler.addFilter(RequestContextFilter())
    else:
        handler.setFormatter(JSONFormatter())
    handler.set_name("scs-user")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "scs-user":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
