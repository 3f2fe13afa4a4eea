"""Logging bootstrap for command-line and embedding entry points.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, on the package logger.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOGGER_NAME = "cfconcat"
LOG_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Attach stream (and optional file) handlers to the ``cfconcat`` logger.

    Repeated calls only adjust the level; handlers are installed once.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = ["LOGGER_NAME", "LOG_FORMAT", "configure_logging"]
