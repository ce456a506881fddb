"""Diagnostics — logging setup for the kvx command line."""
from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_ENV = "KVX_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"


def resolve_level(debug: bool = False) -> int:
    """Pick the log level from --debug or the KVX_LOG_LEVEL variable."""
    if debug:
        return logging.DEBUG
    name = os.environ.get(LOG_ENV, DEFAULT_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.WARNING


def configure_logging(debug: bool = False, no_color: bool = False) -> logging.Logger:
    """Route the kvx logger tree to stderr through a RichHandler."""
    logger = logging.getLogger("kvx")
    level = resolve_level(debug)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
