# Logger - Centralized Logging System
# Singleton registry so every component shares one set of handlers

"""
Logger Module

Responsibilities:
- Setup named loggers once (registry)
- Configure log levels
- Configure log handlers (console, rotating file)
- Log formatting
- Close handlers on exit
"""

import logging
import sys
import atexit
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

# Global registry to track configured loggers
_configured_loggers = {}

# Applied to loggers created after configure_logging() is called
_defaults = {"level": "INFO", "log_file": None}

def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Set the level and file used by loggers created from now on,
    and re-level the ones already created.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path (empty or None disables file output)
    """
    _defaults["level"] = level
    _defaults["log_file"] = log_file or None

    for logger in _configured_loggers.values():
        logger.setLevel(getattr(logging, level.upper()))
        if _defaults["log_file"] and not any(
            isinstance(h, RotatingFileHandler) for h in logger.handlers
        ):
            logger.addHandler(_file_handler(_defaults["log_file"]))

def _formatter() -> logging.Formatter:
    return logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

def _file_handler(log_file: str) -> RotatingFileHandler:
    # Ensure log directory exists
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10485760,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(_formatter())
    file_handler.setLevel(logging.DEBUG)  # File gets all levels
    return file_handler

def setup_logger(name: str = "marketprice", level: Optional[str] = None, log_file: Optional[str] = None):
    """
    Setup logger with console and file handlers (singleton pattern)

    Returns the existing logger if one was already configured under
    this name, so handlers are never registered twice.

    Args:
        name: Logger name
        level: Log level, defaults to the configured level
        log_file: Optional log file path, defaults to the configured file

    Returns:
        Configured logger instance (existing or new)
    """
    if name in _configured_loggers:
        return _configured_loggers[name]

    logger = logging.getLogger(name)

    if logger.handlers:
        _configured_loggers[name] = logger
        return logger

    level = level or _defaults["level"]
    log_file = log_file or _defaults["log_file"]

    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False  # Prevent propagation to root logger

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_formatter())
    console_handler.setLevel(logging.DEBUG)
    logger.addHandler(console_handler)

    if log_file:
        logger.addHandler(_file_handler(log_file))

    def cleanup_handlers():
        """Close all handlers properly to prevent resource leaks."""
        for handler in logger.handlers[:]:
            try:
                handler.close()
                logger.removeHandler(handler)
            except Exception:
                pass  # Ignore errors during cleanup

    atexit.register(cleanup_handlers)

    _configured_loggers[name] = logger

    return logger
