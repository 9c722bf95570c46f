"""
Logging Configuration

One stdout handler on the root logger with pipe-separated records.
HTTP client libraries used by the source adapters are held at WARNING so
a six-provider search does not log every request line.
"""
import logging
import sys
from typing import Iterable

from medsearch.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries behind the adapters
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "requests")


def setup_logging(level: str = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        quiet: Loggers capped at WARNING regardless of level
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler.setLevel(log_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as get_logger(__name__)."""
    return logging.getLogger(name)


setup_logging(settings.LOG_LEVEL)
