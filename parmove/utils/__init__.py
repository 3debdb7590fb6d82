"""Utilities module for parmove."""

from .logging_config import setup_logging, get_logger, LoggingConfig
from .exceptions import (
    ErrorCode,
    ParmoveError,
    ConfigurationError,
    SetupError,
    FileProcessingError,
)
from .notifications import DesktopNotifier, NotificationConfig

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "ErrorCode",
    "ParmoveError",
    "ConfigurationError",
    "SetupError",
    "FileProcessingError",
    "DesktopNotifier",
    "NotificationConfig",
]
