"""
Logging configuration and utilities.

This module provides:
- Centralized logger creation
- Consistent log formatting across modules
- Link sanitization for log lines
"""

from __future__ import annotations

import logging
import os
from urllib.parse import urlsplit, urlunsplit




# ==== LOGGER FACTORY ==== #

def get_logger(name: str) -> logging.Logger:
    """
    Get or create logger with standardized formatting.

    This function ensures all loggers in the application
    use consistent formatting and configuration.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logging.Logger instance

    Format:
        YYYY-MM-DD HH:MM:SS,mmm LEVEL module.name message

    Note:
        Logger is configured only on first call for each name.
        The level comes from the LOG_LEVEL environment variable
        (default INFO).
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    return logger




# ==== LOG SANITIZATION ==== #

def safe_url(link: str, limit: int = 80) -> str:
    """
    Strip query and fragment from a link and truncate it for logging.

    Links handed to the resolver often carry tokens in their query
    string; those never reach the logs.

    Example:
        safe_url("https://a.example/x?token=1#f") -> "https://a.example/x"
    """
    try:
        parts = urlsplit(link)
    except ValueError:
        return link[:limit]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))[:limit]
