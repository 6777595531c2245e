"""Logging setup for the BFF.

Modules log through named children of the ``twitter_auth_bff`` logger;
``configure_logging`` attaches the single stderr handler at startup.
"""

from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER = "twitter_auth_bff"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Configure the package logger.

    Parameters
    ----------
    level : str or int
        Level name (``"DEBUG"``, ``"INFO"``...) or numeric level.

    Returns
    -------
    logging.Logger
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Only add handler if none exists
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)

    return logger
