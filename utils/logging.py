"""Logging configuration and utilities."""

import logging
import sys
from typing import Optional, TextIO


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    Configure logging for the entire application.

    Records go to stderr unless another stream is given; the reference
    server keeps stdout for its status lines.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
               Default: INFO
        stream: Destination stream (default: sys.stderr)
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(stream or sys.stderr)
        ],
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance configured for the module
    """
    return logging.getLogger(name)
