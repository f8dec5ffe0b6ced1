"""
Root logging setup for the proxy process.

Module loggers come from ``logging.getLogger(__name__)``; this module only
installs the handler and format once, from the CLI.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request or connection at DEBUG/INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def resolve_level(level: Optional[str | int]) -> int:
    """Turn a level name or number into a logging level, falling back to INFO."""
    if level is None:
        level = os.getenv("IPFS_VHOSTS_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        return logging.INFO
    return numeric_level


def configure_logging(level: Optional[str | int] = None) -> int:
    """
    Configure root logging with the proxy's format.

    ``level`` defaults to ``IPFS_VHOSTS_LOG_LEVEL`` (or INFO). Calling it again
    only changes the level.

    Returns:
        The numeric level applied.
    """
    numeric_level = resolve_level(level)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger().setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return numeric_level
