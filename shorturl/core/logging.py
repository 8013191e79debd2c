"""
Core logging module.

This module configures the application logging with Loguru.
"""

import inspect
import logging
import os
import sys
from typing import Optional

from loguru import logger

from shorturl.core.config import Settings, settings as default_settings

# Loggers of third-party libraries whose handlers are replaced by the interceptor
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", "sqlalchemy.engine")


class InterceptHandler(logging.Handler):
    """
    Intercept standard logging and redirect to loguru.

    This handler intercepts all standard library logging calls
    and redirects them to loguru's more powerful logging system.
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Try to get corresponding Loguru level or use level number
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(settings: Optional[Settings] = None):
    """
    Configure application logging using Loguru.

    This sets up Loguru with a stderr sink, an optional rotating file sink,
    and intercepts standard library logging so every module ends up in the
    same place.

    Args:
        settings: Settings to configure from; the module singleton by default

    Returns:
        The configured loguru logger
    """
    settings = settings or default_settings

    # Remove default handlers
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
        backtrace=settings.DEBUG,
        diagnose=settings.DEBUG,
    )

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        log_file_path = os.path.join(settings.LOG_DIR, settings.LOG_FILENAME)

        if settings.LOG_JSON:
            logger.add(
                log_file_path,
                level=settings.LOG_LEVEL,
                serialize=True,  # This enables JSON serialization
                rotation=settings.LOG_ROTATION,
                retention=settings.LOG_RETENTION,
                compression="gz",
            )
        else:
            logger.add(
                log_file_path,
                level=settings.LOG_LEVEL,
                format=settings.LOG_FORMAT,
                rotation=settings.LOG_ROTATION,
                retention=settings.LOG_RETENTION,
                compression="gz",
            )

    # Intercept standard library logging
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Let existing loggers propagate to the interceptor on the root logger
    for name in list(logging.root.manager.loggerDict.keys()):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for log_name in INTERCEPTED_LOGGERS:
        logging_logger = logging.getLogger(log_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False

    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logger
