"""Logging helpers for gallerysync."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER: Optional[logging.Logger] = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger() -> logging.Logger:
    """Return the package-level logger, attaching a console handler once."""

    global _LOGGER
    if _LOGGER is None:
        _LOGGER = logging.getLogger("gallerysync")
        if not _LOGGER.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            _LOGGER.addHandler(handler)
        _LOGGER.setLevel(logging.INFO)
    return _LOGGER


def configure_logging(verbose: int = 0, quiet: bool = False) -> logging.Logger:
    """Map command-line verbosity flags onto the package logger level."""

    root = get_logger()
    if quiet:
        root.setLevel(logging.WARNING)
    elif verbose > 0:
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(logging.INFO)
    return root


logger = get_logger()
