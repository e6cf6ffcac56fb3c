"""
Logging setup shared by services and repositories.
"""

import logging
import sys

from timebox.core.config import get_settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger configured with the application's level and format.

    Handlers are attached once per logger name, so calling this at import
    time in many modules is safe.
    """
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        log.addHandler(handler)
        log.propagate = False
    log.setLevel(get_settings().LOG_LEVEL)
    return log


logger = setup_logger("timebox")
