"""Logging configuration for component_forge.

All modules obtain their logger through :func:`get_logger` so that output is
routed through a single ``component_forge`` logger hierarchy rendered by rich.
"""

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "component_forge"
LOG_LEVEL_ENV = "FORGE_LOG_LEVEL"

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str | None = None,
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Falls back to the ``FORGE_LOG_LEVEL`` environment variable, then WARNING.
        log_file: Optional path for a plain-text log file.
        console: Rich console to render to (stderr by default).

    Returns:
        The configured package root logger.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")

    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setLevel(log_level)
    logger.addHandler(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module inside the package.

    Args:
        name: Logger name (typically ``__name__``).

    Returns:
        Logger nested under the package root logger.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
