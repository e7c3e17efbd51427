# daily_shutdown/logging_setup.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "daily_shutdown"


def configure_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger. Calling it again
    replaces the handler rather than adding another.

    :param verbose: Log at DEBUG instead of INFO.
    :param stream: Destination; ``sys.stdout`` by default.
    :return: The package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_daily_shutdown", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._daily_shutdown = True
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
