"""
Logging setup.

Modules log through `logging.getLogger(__name__)`. configure_logging()
installs a single Rich handler on the package logger. The handler writes
to stderr because stdout carries the MCP stdio transport.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from stm32n6_dev.schema import LogLevel

PACKAGE_LOGGER = "stm32n6_dev"

_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def to_logging_level(level: LogLevel | str) -> int:
    """Map a configured log level onto a logging module level."""
    return _LEVELS[LogLevel(level)]


def configure_logging(level: LogLevel | str = LogLevel.INFO) -> logging.Logger:
    """
    Configure the package logger.

    Calling this again replaces the previous handler instead of adding a
    second one.

    Args:
        level: Minimum level to emit

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(to_logging_level(level))
    logger.propagate = False
    return logger
