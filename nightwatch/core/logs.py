from __future__ import annotations

import logging
from typing import IO

LOGGER_NAME = "nightwatch"
_LOG_FORMAT = "nightwatch: %(levelname)s %(message)s"


def configure_logging(debug: bool = False, stream: IO[str] | None = None) -> logging.Logger:
    """Configure and return the ``nightwatch`` logger.

    Repeated calls only adjust the level so handlers are never duplicated.
    """
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return logger
