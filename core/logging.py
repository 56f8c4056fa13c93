"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger, get_logger

    logger.info("Controller started")

    log = get_logger(__name__)
    log.debug("Dropped malformed sample")

Log Levels (from most to least verbose):
    DEBUG    - Detailed diagnostic information (e.g., "Dropped SSE message: ...")
    INFO     - General informational messages (e.g., "Live stream open")
    WARNING  - Warnings about potential issues (e.g., "History item skipped")
    ERROR    - Errors that don't crash the app (e.g., "Failed to fetch history")
    CRITICAL - Severe errors that may crash

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional


ROOT_LOGGER_NAME = "ratewatch"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] ratewatch: Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level
except ImportError:
    log_level = "INFO"

# Create the global logger instance
logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance for the specified name

    Example:
        # In feeds/history_client.py:
        logger = get_logger(__name__)  # "ratewatch.feeds.history_client"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("/rate/history")
        [DEBUG] API Request: /rate/history
    """
    if params:
        logger.debug(f"API Request: {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {endpoint}")


def log_api_response(endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("/rate/history", 200, 0.342)
        [DEBUG] API Response: /rate/history | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {endpoint} | Status: {status}{time_str}")


def log_stream_event(event: str, handle_id: int = None, details: str = None) -> None:
    """
    Log a live stream lifecycle event with consistent formatting.

    Args:
        event: Event type (e.g., "connecting", "open", "closed", "error")
        handle_id: Live handle identifier (optional)
        details: Additional details (optional)

    Example:
        >>> log_stream_event("open", 3)
        [INFO] SSE: open | Handle: 3

        >>> log_stream_event("error", 3, "Server closed the stream")
        [ERROR] SSE: error | Handle: 3 | Server closed the stream
    """
    handle_str = f" | Handle: {handle_id}" if handle_id is not None else ""
    details_str = f" | {details}" if details else ""

    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"SSE: {event}{handle_str}{details_str}")


logger.debug("Logging system initialized")
