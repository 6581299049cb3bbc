#!/usr/bin/env python3
"""
logging_setup.py
================
Configures the root logger with a console handler and a rotating file
handler (``lane_blocker.log``, 1 MB, 2 backups).

Per-cycle association detail goes to its own ``association_debug.log``.

Call :func:`setup_logging` once at startup before the node is started.
"""

import logging
from logging.handlers import RotatingFileHandler

from config import ASSOCIATION_DEBUG_LOG_FILE, LOG_FILE


def setup_logging(
    level: int = logging.INFO,
    log_file: str = LOG_FILE,
    debug_file: str = ASSOCIATION_DEBUG_LOG_FILE,
) -> None:
    """Apply a unified log format to both console and file output.

    Parameters
    ----------
    level : int
        Minimum severity level (e.g. ``logging.DEBUG``, ``logging.INFO``).
    log_file : str
        Path of the main rotating log.
    debug_file : str
        Path of the dedicated association debug log.
    """
    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)

    fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=2)
    fh.setLevel(level)
    fh.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(ch)
    root.addHandler(fh)

    # ── Dedicated debug file for the association cycle ────────────────
    assoc_logger = logging.getLogger("association")
    assoc_logger.setLevel(logging.DEBUG)
    for handler in list(assoc_logger.handlers):
        assoc_logger.removeHandler(handler)
        handler.close()
    dfh = RotatingFileHandler(debug_file, maxBytes=5_000_000, backupCount=2)
    dfh.setLevel(logging.DEBUG)
    dfh.setFormatter(fmt)
    assoc_logger.addHandler(dfh)
