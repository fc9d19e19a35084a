"""Utility modules for logging and exception handling."""

from utils.logging import setup_logging, get_logger
from utils.exceptions import (
    BounceError,
    ConfigurationError,
    ErrorCategory,
    FailureReason,
    FrameError,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'BounceError',
    'ConfigurationError',
    'ErrorCategory',
    'FailureReason',
    'FrameError',
]
