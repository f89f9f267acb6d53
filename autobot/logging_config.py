"""Logging setup for the server process."""

import logging
import sys
from typing import Union

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s | %(name)-20s | %(funcName)-15s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach one stdout handler to the package logger; safe to call twice."""
    logger = logging.getLogger("autobot")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
