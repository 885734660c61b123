"""
Logger Configuration Module

Provides centralized logging configuration for all wallet service components.
Supports both file and console logging with different formatters.

Key Features:
- Configurable log levels
- File and console output
- Component-specific loggers
- Rotating file handlers
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional, Union
from .config import settings

# Log file per known component, attached by configure_loggers()
LOG_FILES = {
    'app': 'app.log',
    'api': 'api.log',
    'store': 'store.log',
    'redis_service': 'redis_service.log',
    'db': 'db.log',
    'resolver': 'resolver.log',
    'seeder': 'seeder.log',
    'celery': 'celery.log',
}


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: Optional[Union[str, int]] = None,
    logs_dir: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'resolver', 'store')
        log_file: Optional log file name. If None, only console logging is used
        level: Optional log level. If None, uses level from settings
        logs_dir: Directory for the log file, defaults to settings.LOGS_DIR

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Remove any existing handlers to prevent duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(level or settings.LOG_LEVEL)

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(levelname)s - %(name)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        directory = logs_dir or settings.LOGS_DIR
        try:
            os.makedirs(directory, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(directory, log_file),
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(file_formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Error setting up file handler for {name}: {str(e)}")

    return logger


log_level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

# Initialize component loggers with console logging only
app_logger = setup_logger('app', None, level=log_level)
api_logger = setup_logger('api', None, level=log_level)
store_logger = setup_logger('store', None, level=log_level)
redis_service_logger = setup_logger('redis_service', None, level=log_level)
db_logger = setup_logger('db', None, level=log_level)
resolver_logger = setup_logger('resolver', None, level=log_level)
seeder_logger = setup_logger('seeder', None, level=log_level)
celery_logger = setup_logger('celery', None, level=log_level)

_loggers_configured = False


def configure_loggers(logs_dir: str) -> None:
    """
    Attach rotating file handlers to every known component logger.

    Args:
        logs_dir: Directory path for log files

    Note:
        Called once at application startup; later calls are no-ops.
    """
    global _loggers_configured
    if _loggers_configured:
        return

    os.makedirs(logs_dir, exist_ok=True)
    for name, log_file in LOG_FILES.items():
        setup_logger(name, log_file, level=log_level, logs_dir=logs_dir)

    app_logger.info(f"Loggers configured with directory: {logs_dir}")
    _loggers_configured = True


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Get or create a logger for a component.

    Known components get their pre-configured logger; anything else gets
    a console-only logger.
    """
    if name in LOG_FILES:
        return logging.getLogger(name)
    return setup_logger(name, None, level=level or log_level)


__all__ = [
    'app_logger',
    'api_logger',
    'store_logger',
    'redis_service_logger',
    'db_logger',
    'resolver_logger',
    'seeder_logger',
    'celery_logger',
    'setup_logger',
    'get_logger',
    'configure_loggers',
]
