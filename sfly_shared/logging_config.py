"""
Logging configuration for the Shutterfly Session Keeper.

This module provides structured logging of session resolution events and
configurable output formats for the client.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import SessionKeeperError
from .models import ResolutionState, ResolutionTier


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(Enum):
    """Log format enumeration."""
    STANDARD = "standard"
    JSON = "json"
    DETAILED = "detailed"


# LogRecord attributes that are not user supplied extras
_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'taskName', 'message', 'asctime', 'error_info', 'resolution_event'
}


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs with consistent fields.
    """

    def __init__(self, include_extra_fields: bool = True):
        super().__init__()
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'pid': os.getpid()
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        error = getattr(record, 'error_info', None)
        if isinstance(error, SessionKeeperError):
            log_entry['error'] = {
                'code': error.error_code.value,
                'type': type(error).__name__,
                'severity': error.severity.value,
                'context': error.context
            }

        if hasattr(record, 'resolution_event'):
            log_entry['resolution'] = record.resolution_event

        if self.include_extra_fields:
            extra_fields = {
                key: value for key, value in record.__dict__.items()
                if key not in _RESERVED_RECORD_KEYS
            }
            if extra_fields:
                log_entry['extra'] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class DetailedFormatter(logging.Formatter):
    """
    Detailed human-readable formatter with comprehensive information.
    """

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-30s | %(funcName)-15s:%(lineno)-4d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with detailed information."""
        formatted = super().format(record)

        error = getattr(record, 'error_info', None)
        if isinstance(error, SessionKeeperError):
            formatted += f"\n  Error Code: {error.error_code.value}"
            formatted += f"\n  Severity: {error.severity.value}"
            if error.context:
                formatted += f"\n  Context: {json.dumps(error.context, indent=2, default=str)}"

        if hasattr(record, 'resolution_event'):
            formatted += f"\n  Resolution: {json.dumps(record.resolution_event, default=str)}"

        return formatted


class ResolutionLogger:
    """
    Logger for session resolution events.

    Every event names the tier being consulted, the resolver state and the
    outcome, so a log sink can reconstruct each call from the event stream.
    """

    def __init__(self, logger_name: str = "sfly_client.resolution"):
        self.logger = logging.getLogger(logger_name)

    def log_event(
        self,
        message: str,
        state: ResolutionState,
        tier: Optional[ResolutionTier] = None,
        outcome: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
        level: int = logging.DEBUG
    ):
        """
        Log a resolution event with structured information.

        Args:
            message: Human-readable message
            state: Resolver state when the event happened
            tier: Tier being consulted, if any
            outcome: Short outcome label (hit, miss, invalid, ...)
            detail: Additional context information
            level: Log level to emit the event at
        """
        resolution_event = {
            'state': state.value,
            'tier': tier.value if tier else None,
            'outcome': outcome,
            'detail': detail
        }
        resolution_event = {k: v for k, v in resolution_event.items() if v is not None}

        self.logger.log(level, message, extra={'resolution_event': resolution_event})


def setup_logging(
    log_level: LogLevel = LogLevel.INFO,
    log_format: LogFormat = LogFormat.STANDARD,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        log_level: Minimum log level to capture
        log_format: Format for log output
        log_file: Path to log file (optional)
        max_file_size: Maximum size of log files before rotation
        backup_count: Number of backup files to keep
        enable_console: Whether to enable console logging

    Returns:
        The configured root logger
    """
    # Clear any existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.value))

    if log_format == LogFormat.JSON:
        formatter = StructuredFormatter()
    elif log_format == LogFormat.DETAILED:
        formatter = DetailedFormatter()
    else:  # STANDARD
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    # Console output goes to stderr so stdout stays reserved for the token
    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def log_structured_error(
    logger: logging.Logger,
    error: SessionKeeperError,
    level: int = logging.ERROR
):
    """
    Log a structured error with full context information.

    Args:
        logger: Logger instance to use
        error: The structured error to log
        level: Log level to emit the error at
    """
    logger.log(level, error.message, extra={'error_info': error})
