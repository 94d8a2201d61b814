"""
Logging configuration for OrderHub.

Plain text lines in development, one JSON object per line in production
(or whenever LOG_JSON is set). Extra attributes passed through ``extra=``
are folded into the JSON object.
"""
import json
import logging
from datetime import datetime
from typing import Any

from orderhub.core.settings import settings

_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
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
    "asctime",
}

_configured = False


class JsonFormatter(logging.Formatter):
    """Lightweight JSON log formatter to keep dependencies minimal."""

    def format(self, record: logging.LogRecord) -> str:
        log_object: dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if value is not None:
                log_object[key] = value

        if record.exc_info:
            log_object["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_object["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_object, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """Configure root logging once per process."""
    global _configured
    if _configured:
        return

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    use_json = settings.LOG_JSON or settings.is_production
    formatter: logging.Formatter = JsonFormatter() if use_json else logging.Formatter(
        "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.setLevel(log_level)
        logger.propagate = True

    logging.captureWarnings(True)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; handlers are attached to the root by setup_logging()."""
    return logging.getLogger(name)
