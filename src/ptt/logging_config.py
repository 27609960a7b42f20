"""
Logging setup for entry points.

Library modules only create `logging.getLogger(__name__)`; handlers are
installed once by whoever runs the process.
"""

import logging

from ptt.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a root handler at the configured level."""
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
