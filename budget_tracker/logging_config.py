"""Logging setup: console plus rotating file, JSON in production, trace ids on every record."""

import json
import logging
import logging.handlers
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path

from .config import Settings


ROOT_LOGGER = "budget_tracker"

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="unknown-trace-id")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class TraceIDFilter(logging.Filter):
    """Stamp the current request's trace id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = trace_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    _STANDARD_ATTRS = {
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
        "processName", "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName", "trace_id",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "trace_id": getattr(record, "trace_id", trace_id_var.get()),
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Anything passed through logger.info(..., extra={...})
        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


def setup_logging(config: Settings) -> logging.Logger:
    """Configure the ``budget_tracker`` logger tree.

    Development gets a readable console format; production gets JSON on both
    console and file. The file handler rotates at 10 MB keeping 5 backups.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(_LEVELS.get(config.log_level.lower(), logging.INFO))
    root_logger.handlers.clear()

    trace_filter = TraceIDFilter()

    if config.is_production:
        console_formatter: logging.Formatter = JSONFormatter()
    else:
        console_formatter = logging.Formatter(
            fmt="[%(asctime)s] %(levelname)-8s [TraceID=%(trace_id)s] [%(name)s.%(funcName)s:%(lineno)d] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(trace_filter)
    root_logger.addHandler(console_handler)

    logs_dir = Path(config.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / "budget_tracker.log"
    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler.addFilter(trace_filter)
    root_logger.addHandler(file_handler)

    root_logger.info(
        "Logging initialized",
        extra={"environment": config.environment, "log_file": str(log_file)},
    )
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``budget_tracker`` tree; accepts a short name or ``__name__``."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
