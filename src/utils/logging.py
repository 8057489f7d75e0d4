"""
Logging configuration utilities for the Gemini terminal client.
"""

import logging
import sys
from typing import Optional, TextIO


PACKAGE_LOGGER = "src.gemclient"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.WARNING,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Page output goes to stdout, so log records are written to stderr
    unless another stream is given.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string
        include_timestamp: Whether to include timestamp in logs
        stream: Stream for the handler (default: sys.stderr)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding multiple handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if format_string is None:
        if include_timestamp:
            format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        else:
            format_string = '%(name)s - %(levelname)s - %(message)s'

    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    return logger


def set_global_log_level(level: int) -> None:
    """
    Set the logging level of the client's loggers and their handlers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logging.getLogger().setLevel(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def configure_debug_logging() -> None:
    """Switch the client's loggers to DEBUG with source line numbers."""
    set_global_log_level(logging.DEBUG)

    debug_format = '%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s'
    for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
        handler.setFormatter(logging.Formatter(debug_format))
