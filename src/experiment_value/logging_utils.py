"""
Logging
=======

Package loggers share one stderr handler format:

    [2026-01-31 12:00:00] [WARNING] experiment_value.decision.evsi - message

The level comes from the ``LOG_LEVEL`` environment variable (default
WARNING, so library users only see fallbacks and undefined results).

Example Usage:
--------------
>>> from experiment_value.logging_utils import get_logger
>>>
>>> logger = get_logger(__name__)
>>> logger.debug("EVSI degenerate: %s", "empty arm")
"""

import logging
import os
import sys


def get_logger(name: str = "experiment_value") -> logging.Logger:
    """Logger for ``name``, configured once on first use."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level_name = os.getenv("LOG_LEVEL", "WARNING").upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
