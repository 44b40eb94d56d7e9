"""Logging configuration for the vocabcore command-line tools."""
import logging
from typing import Optional

from vocabcore.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration. Repeated calls only change the level."""
    global _handler

    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(_handler)

    # Set logging levels for third-party libraries
    logging.getLogger("duckdb").setLevel(logging.WARNING)
