"""
Logging utilities for the tower finder core.
Provides structured logging with rotation and per-session correlation IDs.
"""

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any

# Context variable for correlation ID (one per navigation/hunting session)
correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records for session tracking."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to the log record."""
        record.correlation_id = correlation_id.get() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging with correlation IDs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with correlation ID."""
        if hasattr(record, "correlation_id") and record.correlation_id != "no-correlation-id":
            original_msg = record.getMessage()
            record.msg = f"[{record.correlation_id}] {original_msg}"
            record.args = ()  # Clear args to prevent re-formatting

        return super().format(record)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file_path: str | None = None,
    log_file_max_bytes: int = 10485760,  # 10 MB
    log_file_backup_count: int = 5,
    enable_console: bool = True,
    enable_file: bool = True,
) -> None:
    """
    Set up logging configuration with console and rotating file handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log message format string
        log_file_path: Path to log file
        log_file_max_bytes: Maximum size of log file before rotation
        log_file_backup_count: Number of backup files to keep
        enable_console: Enable console logging
        enable_file: Enable file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    root_logger.handlers.clear()

    formatter = StructuredFormatter(log_format)
    correlation_filter = CorrelationIdFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(correlation_filter)
        root_logger.addHandler(console_handler)

    if enable_file and log_file_path:
        log_path = Path(log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=log_file_max_bytes, backupCount=log_file_backup_count
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(correlation_filter)
        root_logger.addHandler(file_handler)

    root_logger.info(f"Logging configured with level: {log_level}")


def setup_logging_from_config(logging_config: Any) -> None:
    """Set up logging from a LoggingConfig section."""
    setup_logging(
        log_level=logging_config.LOG_LEVEL,
        log_format=logging_config.LOG_FORMAT,
        log_file_path=logging_config.LOG_FILE_PATH,
        log_file_max_bytes=logging_config.LOG_FILE_MAX_BYTES,
        log_file_backup_count=logging_config.LOG_FILE_BACKUP_COUNT,
        enable_console=logging_config.LOG_ENABLE_CONSOLE,
        enable_file=logging_config.LOG_ENABLE_FILE,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_correlation_id(request_id: str | None = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        request_id: Optional correlation ID. If not provided, generates a new UUID.

    Returns:
        The correlation ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())

    correlation_id.set(request_id)
    return request_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the current correlation ID."""
    correlation_id.set(None)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level
        message: Log message
        **context: Additional context fields to include
    """
    if context:
        context_str = " ".join([f"{k}={v}" for k, v in context.items()])
        full_message = f"{message} | {context_str}"
    else:
        full_message = message

    logger.log(level, full_message)


class LogContext:
    """Context manager for managing correlation IDs."""

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id

    def __enter__(self) -> str:
        """Enter context and set correlation ID."""
        self.request_id = set_correlation_id(self.request_id)
        return self.request_id

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context and clear correlation ID."""
        clear_correlation_id()


def log_debug(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log debug message with context."""
    log_with_context(logger, logging.DEBUG, message, **context)


def log_info(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log info message with context."""
    log_with_context(logger, logging.INFO, message, **context)


def log_warning(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log warning message with context."""
    log_with_context(logger, logging.WARNING, message, **context)


def log_error(logger: logging.Logger, message: str, **context: Any) -> None:
    """Log error message with context."""
    log_with_context(logger, logging.ERROR, message, **context)
