"""
Logging for Salescout.

A single stdout handler sits on the package logger ("salescout"); every
module logger is a child of it and propagates there, so log level and
format are controlled in one place.
"""
import logging
import sys
from typing import Optional

from .config import Config

PACKAGE_LOGGER = "salescout"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Attach the stdout handler to a logger, replacing any handler set up earlier.

    Args:
        name: Logger to configure (the package logger by default)
        level: Log level name (default Config.LOG_LEVEL)
        format_string: Format (default Config.LOG_FORMAT)

    Returns:
        The configured logger
    """
    target = logging.getLogger(name)
    numeric_level = getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string or Config.LOG_FORMAT))

    target.handlers = [handler]
    target.setLevel(numeric_level)
    target.propagate = False
    return target


def get_logger(name: str) -> logging.Logger:
    """
    Module logger under the package logger.

    "salescout.services.batch" and "services.batch" name the same logger;
    entry scripts ("__main__") log as "salescout.__main__".
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    if not package.handlers:
        setup_logger()

    if name == PACKAGE_LOGGER:
        return package
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name.removeprefix(PACKAGE_LOGGER + '.')}")
