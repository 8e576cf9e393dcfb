"""
Logging setup.

All modules log through the standard library; handlers are attached once to
the package root logger.
"""

import logging
import sys

from marketplace.core.config import get_settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "marketplace"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(get_settings().LOG_LEVEL.upper())
        root.propagate = True
    return root


def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package root.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Configured logger
    """
    _configure_root()
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


logger = setup_logger(ROOT_LOGGER_NAME)
