"""
Logging configuration for the kickwatch CLI.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_ROOT_LOGGER = "kickwatch"


def configure_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the kickwatch logger.

    Calling it again replaces the handlers added by a previous call.

    Parameters
    ----------
    level : str, optional
        Log level name (default: "INFO").
    log_file : Path | None, optional
        Also write records to this file when given.
    console : Console | None, optional
        Rich console for the console handler (default: stderr).

    Returns
    -------
    logging.Logger
        The configured ``kickwatch`` logger.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(_ROOT_LOGGER)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)

    logger.setLevel(log_level)
    logger.propagate = False
    return logger
