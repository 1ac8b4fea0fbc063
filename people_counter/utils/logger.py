"""Logging setup for the people counter service.

Every module logs through ``logging.getLogger(__name__)``; the process
bootstrap attaches handlers once to the ``people_counter`` package logger
with :func:`configure_logging`, which also routes uvicorn's request and
lifecycle records to the same destinations.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from people_counter.utils.config import LoggingConfig

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "people_counter"
# Parent of uvicorn.error and uvicorn.access.
SERVER_LOGGER = "uvicorn"


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """Create and configure a logger writing to stdout and optionally a file.

    Args:
        name: Logger name. Use ``"people_counter"`` to cover every module
            of the package.
        log_file: Optional path to a log file. Parent directories are
            created if missing.
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL). Unknown
            names fall back to INFO.

    Returns:
        The configured logger. A logger that already has handlers is
        returned unchanged.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Apply the ``logging`` section of the configuration.

    The server is started with ``log_config=None``, so uvicorn leaves its
    own loggers bare; they are given the package handlers here and stop
    propagating to the root logger.

    Args:
        config: Level and optional log file.

    Returns:
        The ``people_counter`` package logger.
    """
    package_logger = setup_logger(PACKAGE_LOGGER, config.file, config.level)

    server_logger = logging.getLogger(SERVER_LOGGER)
    server_logger.setLevel(package_logger.level)
    for handler in package_logger.handlers:
        if handler not in server_logger.handlers:
            server_logger.addHandler(handler)
    server_logger.propagate = False

    return package_logger
