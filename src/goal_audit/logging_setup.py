"""Logging configuration for Goal Audit."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(name)s - %(message)s"

_handler: Optional[logging.Handler] = None


def setup_logging(level: str = "WARNING") -> None:
    """Send log records to stderr at the given level.

    Calling it again only changes the level.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
    """
    global _handler

    log_level = getattr(logging, level.upper(), logging.WARNING)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if _handler is None:
        _handler = RichHandler(console=Console(stderr=True), show_path=False)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(_handler)
    _handler.setLevel(log_level)
