"""Logging configuration for the vector store engine."""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

if TYPE_CHECKING:
    from tidb_vector.config import Settings

ROOT_LOGGER_NAME = "tidb_vector"

# Operation ID context variable for correlating log lines of one async call chain
operation_id_var: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)

_RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "extra_fields",
        "operation_id",
    ]
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        operation_id = operation_id_var.get()
        if operation_id:
            log_data["operation_id"] = operation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        # Anything passed through `extra=` that is not a standard attribute
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Standard formatter for development (human-readable)."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - [%(operation_id)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with operation ID."""
        if not hasattr(record, "operation_id"):
            record.operation_id = operation_id_var.get() or "N/A"

        return super().format(record)


def setup_logging(level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """
    Install a stdout handler on the package logger.

    Calling it again replaces the previous handler, so the level and format
    can be changed at runtime.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of the human-readable format

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter() if json_format else StandardFormatter())
    logger.addHandler(console_handler)

    # Set log level for third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)

    logger.propagate = False

    logger.info(
        f"Logging configured: level={level.upper()}, "
        f"format={'JSON' if json_format else 'Standard'}"
    )
    return logger


def configure_logging(settings: "Settings") -> logging.Logger:
    """Set up logging from application settings (JSON in production)."""
    return setup_logging(level=settings.log_level, json_format=settings.is_production)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


def set_operation_id(operation_id: str) -> None:
    """Set the operation ID for the current context."""
    operation_id_var.set(operation_id)


def get_operation_id() -> Optional[str]:
    """Get the current operation ID."""
    return operation_id_var.get()


@contextmanager
def operation_context(operation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind an operation ID for the duration of the block.

    An ID already bound by the caller is kept, so nested calls share one ID.
    The previous value is restored on exit.
    """
    bound = operation_id or operation_id_var.get() or uuid.uuid4().hex[:12]
    token = operation_id_var.set(bound)
    try:
        yield bound
    finally:
        operation_id_var.reset(token)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> None:
    """Log an error with context."""
    logger = get_logger("error")
    extra_fields = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
        **kwargs,
    }
    logger.error(
        f"Error: {type(error).__name__}: {str(error)}",
        exc_info=error,
        extra={"extra_fields": extra_fields},
    )
