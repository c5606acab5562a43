"""
Exception hierarchy for the Shutterfly Session Keeper.

This module defines structured exceptions with error codes, severity and
context information for consistent error handling across the system.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the Shutterfly Session Keeper."""

    # Session store errors (1000-1099)
    STORE_READ_FAILED = "STORE_1001"
    STORE_WRITE_FAILED = "STORE_1002"

    # Authentication errors (2000-2099)
    AUTH_LOGIN_FAILED = "AUTH_2001"
    AUTH_TOKEN_EXTRACTION_FAILED = "AUTH_2002"

    # Configuration errors (3000-3099)
    CONFIG_INVALID_VALUE = "CONFIG_3001"
    CONFIG_MISSING_REQUIRED_SETTING = "CONFIG_3002"

    # Internal errors (9000-9099)
    INTERNAL_UNEXPECTED_ERROR = "INTERNAL_9001"


class ErrorSeverity(Enum):
    """Error severity levels for logging and handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SessionKeeperError(Exception):
    """
    Base exception class for all Session Keeper errors.

    Provides structured error information including an error code, severity
    and context for consistent error reporting.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

        # Add cause information to context if available
        if cause:
            self.context['cause_type'] = type(cause).__name__
            self.context['cause_message'] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for serialization."""
        return {
            'error': {
                'code': self.error_code.value,
                'type': type(self).__name__,
                'message': self.message,
                'severity': self.severity.value,
                'timestamp': self.timestamp.isoformat(),
                'context': self.context,
                'cause': {
                    'type': self.context.get('cause_type'),
                    'message': self.context.get('cause_message')
                } if self.cause else None
            }
        }


class StoreReadFailure(SessionKeeperError):
    """Persisted session data exists but is corrupt or unreadable."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path

        super().__init__(
            message=message,
            error_code=ErrorCode.STORE_READ_FAILED,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            **kwargs
        )


class StoreWriteFailure(SessionKeeperError):
    """A freshly obtained session could not be persisted."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path

        super().__init__(
            message=message,
            error_code=ErrorCode.STORE_WRITE_FAILED,
            severity=ErrorSeverity.HIGH,
            context=context,
            **kwargs
        )


class LoginFailure(SessionKeeperError):
    """The remote login did not produce a session."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.AUTH_LOGIN_FAILED,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class TokenExtractionFailure(SessionKeeperError):
    """A session could not yield a usable identity token."""

    def __init__(self, message: str, cookie_names: Optional[list] = None, **kwargs):
        context = kwargs.pop('context', {})
        if cookie_names is not None:
            context['cookie_names'] = list(cookie_names)

        super().__init__(
            message=message,
            error_code=ErrorCode.AUTH_TOKEN_EXTRACTION_FAILED,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            **kwargs
        )


class ConfigurationError(SessionKeeperError):
    """Configuration related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if config_key:
            context['config_key'] = config_key

        error_code = kwargs.pop('error_code', ErrorCode.CONFIG_INVALID_VALUE)

        super().__init__(
            message=message,
            error_code=error_code,
            severity=ErrorSeverity.HIGH,
            context=context,
            **kwargs
        )
