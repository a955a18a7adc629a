"""
utils/logger.py
---------------
Process-wide logging setup.
Every module gets its logger through `get_logger(__name__)`; the root
handler is installed once, on first use, at the level named by LOG_LEVEL.
"""

import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO.
# passlib warns about reading the bcrypt version on every process start.
QUIET_LOGGERS = {"passlib": logging.ERROR}

_configured = False


def configure_logging(level: str = LOG_LEVEL) -> None:
    """
    Install a stdout handler on the root logger, unless one of ours is there.

    Handlers added by someone else (pytest's capture, an app server) are
    left alone; ours is added alongside them.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler.set_name("empresta")
    if not any(h.get_name() == "empresta" for h in root.handlers):
        root.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Named logger for a module; configures logging on first call."""
    configure_logging()
    return logging.getLogger(name)
