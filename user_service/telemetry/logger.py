"""
Logging configuration for user-service.
Structured JSON lines tagged with the correlation id of the current request.
"""

import contextvars
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

from ..config import LoggingConfig


# Correlation id of the request being handled, set by the HTTP middleware
correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)

# LogRecord attributes that never become JSON fields
RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

NOISY_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "pymongo": logging.WARNING,
    "redis": logging.WARNING,
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.
    Values passed through ``extra`` are copied as top-level fields.
    """

    def __init__(self, service_name: str = "user-service"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for key, value in vars(record).items():
            if key not in RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_json_default)


def _json_default(obj: Any) -> str:
    if isinstance(obj, datetime):
        return obj.isoformat()
    return str(obj)


class CorrelationFilter(logging.Filter):
    """
    Stamps records with the current request's correlation id.
    Records emitted outside a request get a time based id.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "correlation_id", None) is None:
            record.correlation_id = correlation_id_var.get() or f"us-{int(time.time() * 1000)}"
        return True


def setup_logging(config: LoggingConfig, service_name: str = "user-service") -> None:
    """
    Route all logging to stdout.

    Args:
        config: Level, output format and correlation settings
        service_name: Value of the "service" field in JSON output
    """
    handler = logging.StreamHandler(sys.stdout)

    if config.json_format:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
        if config.enable_correlation:
            fmt = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    if config.enable_correlation:
        handler.addFilter(CorrelationFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level)

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "component": "logger",
            "level": config.level,
            "json_enabled": config.json_format,
            "correlation_enabled": config.enable_correlation
        }
    )
