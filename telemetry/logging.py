"""Logging configuration for applications embedding the search core."""

import logging
import sys

from telemetry.config import debug_enabled, log_level

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Top-level packages of this project; their loggers follow MAPSEARCH_LOG_LEVEL.
CORE_LOGGERS = ("search", "details", "panels", "orchestrator", "geo")


def setup_logging() -> None:
    """Configure logging for the core packages.

    Level is DEBUG when MAPSEARCH_DEBUG is set, otherwise MAPSEARCH_LOG_LEVEL
    (default INFO). Output goes to stdout.
    """
    level = logging.DEBUG if debug_enabled() else log_level()
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in CORE_LOGGERS:
        logging.getLogger(name).setLevel(level)

