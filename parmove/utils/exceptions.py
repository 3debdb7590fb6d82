"""
Custom Exceptions
=================

Defines custom exception classes for parmove.
All exceptions include error codes for programmatic handling.
"""

import errno
from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for programmatic error handling."""

    # General errors (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    FILE_NOT_FOUND = 1002
    PERMISSION_DENIED = 1003

    # Setup errors (1100-1199)
    INVALID_ROOT = 1100
    INVALID_OUTPUT = 1101

    # Per-item I/O errors (1200-1299)
    PROCESSING_FAILED = 1200
    DISK_FULL = 1201
    DESTINATION_EXISTS = 1202
    DIRECTORY_CREATE_FAILED = 1203
    NAME_SPACE_EXHAUSTED = 1204
    WALK_FAILED = 1205


class ParmoveError(Exception):
    """Base exception for all parmove errors.

    Attributes:
        message: Human-readable error message.
        error_code: Programmatic error code.
        details: Additional error context.
        cause: Original exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Programmatic error code.
            details: Additional context as key-value pairs.
            cause: Original exception if wrapping another error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return a formatted error string."""
        result = f"[{self.error_code.name}] {self.message}"
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return result

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ParmoveError):
    """Raised when the category file, blacklist or settings are invalid.

    Fatal: raised before any file is touched.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        source: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if source:
            details["source"] = source
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            **kwargs
        )


class SetupError(ParmoveError):
    """Raised when the root or output directory cannot be used.

    Fatal: raised before traversal starts.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_ROOT,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if path:
            details["path"] = path
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            **kwargs
        )


class FileProcessingError(ParmoveError):
    """Raised when a single file cannot be sorted.

    Never fatal for a run: workers record it as a failed outcome.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.PROCESSING_FAILED,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            **kwargs
        )


_ERRNO_CODES = {
    errno.ENOENT: ErrorCode.FILE_NOT_FOUND,
    errno.EACCES: ErrorCode.PERMISSION_DENIED,
    errno.EPERM: ErrorCode.PERMISSION_DENIED,
    errno.ENOSPC: ErrorCode.DISK_FULL,
    getattr(errno, "EDQUOT", errno.ENOSPC): ErrorCode.DISK_FULL,
    errno.EEXIST: ErrorCode.DESTINATION_EXISTS,
}


def error_code_for(exc: BaseException) -> ErrorCode:
    """Map an OS-level exception onto an ErrorCode.

    Args:
        exc: Exception raised by a filesystem call.

    Returns:
        Matching ErrorCode, PROCESSING_FAILED when nothing more specific fits.
    """
    if isinstance(exc, ParmoveError):
        return exc.error_code
    if isinstance(exc, OSError) and exc.errno is not None:
        return _ERRNO_CODES.get(exc.errno, ErrorCode.PROCESSING_FAILED)
    return ErrorCode.PROCESSING_FAILED
