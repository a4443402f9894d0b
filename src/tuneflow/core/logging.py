"""Logging configuration for the TuneFlow uploader."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

# Identifier of the chunked upload running in the current task
upload_identifier_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "upload_identifier", default=None
)

_STANDARD_RECORD_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "getMessage", "taskName",
}


class JsonLogFormatter(logging.Formatter):
    """Single-line JSON formatter for log collectors.

    Extra fields passed through ``logger.info(..., extra={...})`` are copied
    into the JSON object. Exceptions and tracebacks are included as strings.
    """

    SEVERITY_MAP = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON.

        Args:
            record: Log record to format

        Returns:
            Single-line JSON string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        identifier = upload_identifier_context.get()
        if identifier:
            log_entry["upload_identifier"] = identifier

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_FIELDS:
                log_entry[key] = value

        if record.exc_info:
            exc_text = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception"] = exc_text
            log_entry["exception_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Unknown"
            log_entry["exception_message"] = str(record.exc_info[1]) if record.exc_info[1] else ""

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the application.

    Local development gets a plain text format at DEBUG. Every other
    environment gets JSON lines at ``LOG_LEVEL``.
    """
    from tuneflow.core.config import settings

    if settings.ENV == "local":
        log_level = logging.DEBUG
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
        formatter = JsonLogFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
