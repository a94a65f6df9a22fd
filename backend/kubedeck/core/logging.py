"""
Logging configuration for kubedeck.

Colored console output on a TTY, JSON records when LOG_JSON is set, optional
rotating log file. structlog events from the service layer are handed to the
same stdlib handlers.
"""
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from ..config import get_settings
from .request_context import request_id_var

_CONFIGURED = False

_RESERVED_ATTRS = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "msg", "name", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "taskName", "thread", "threadName",
}


class ContextFilter(logging.Filter):
    """Inject request_id and service fields into every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        rid = getattr(record, "request_id", None) or request_id_var.get()
        if rid is not None:
            record.request_id = rid
        if not hasattr(record, "service"):
            record.service = "kubedeck"
        return True


class ColoredFormatter(logging.Formatter):
    """Console formatter with ANSI colored level names."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # Color a copy; the same record also reaches the file handler
        colored = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.RESET)
        colored.levelname = f"{log_color}{record.levelname}{self.RESET}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter.

    Emits time, level, name and message, merges any extra attributes, and
    redacts values of sensitive keys such as tokens.
    """

    REDACT_KEYS = {"password", "secret", "token", "authorization", "api_key"}

    def __init__(self, datefmt: Optional[str] = None) -> None:
        super().__init__(datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        rid = getattr(record, "request_id", None) or request_id_var.get()
        if rid:
            payload["request_id"] = rid

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            safe_key = str(key)
            payload[safe_key] = "***REDACTED***" if safe_key.lower() in self.REDACT_KEYS else value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _configure_structlog(json_output: bool) -> None:
    # JSON mode passes event fields as LogRecord extras so JSONFormatter keeps them structured
    renderer = (
        structlog.stdlib.render_to_log_kwargs
        if json_output
        else structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    use_color: bool = True,
) -> logging.Logger:
    """Configure the root logger once.

    Args:
        level: log level name, defaults to LOG_LEVEL
        log_file: optional log file path, defaults to LOG_FILE
        use_color: color console output when stdout is a TTY

    Returns:
        logging.Logger: the "kubedeck" logger
    """
    global _CONFIGURED
    logger = logging.getLogger("kubedeck")

    if _CONFIGURED:
        return logger

    settings = get_settings()
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    for h in list(root.handlers):
        root.removeHandler(h)

    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.addFilter(context_filter)

    if settings.log_json:
        console_formatter = JSONFormatter(datefmt=settings.log_date_format)
    elif use_color and sys.stdout.isatty():
        console_formatter = ColoredFormatter(settings.log_format, datefmt=settings.log_date_format)
    else:
        console_formatter = logging.Formatter(settings.log_format, datefmt=settings.log_date_format)

    console_handler.setFormatter(console_formatter)
    root.addHandler(console_handler)

    file_path = log_file or settings.log_file
    if file_path:
        log_path = Path(file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)

        if settings.log_json:
            file_formatter = JSONFormatter(datefmt=settings.log_date_format)
        else:
            file_formatter = logging.Formatter(settings.log_format, datefmt=settings.log_date_format)
        file_handler.setFormatter(file_formatter)
        root.addHandler(file_handler)

    # Route uvicorn through the root handlers
    for log_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        l = logging.getLogger(log_name)
        l.handlers = []
        l.propagate = True

    # The kubernetes client logs every request body at DEBUG
    logging.getLogger("kubernetes").setLevel(logging.WARNING)

    _configure_structlog(settings.log_json)

    _CONFIGURED = True
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a stdlib logger by name."""
    return logging.getLogger(name)
