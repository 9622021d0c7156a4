"""Universal debug/logging utility for medialib.

Provides setup_logger() and a debug() helper gated by the MEDIALIB_DEBUG
environment variable.
Library modules log through ``logging.getLogger(__name__)``; the handler set
up here sits on the ``medialib`` parent logger so both paths share a format.
"""

import logging
import os
from typing import Optional

DEBUG_ON = os.getenv("MEDIALIB_DEBUG", "0") == "1"

_logger: Optional[logging.Logger] = None


def setup_logger(level: Optional[int] = None) -> logging.Logger:
    global _logger
    if _logger is not None:
        if level is not None:
            _logger.setLevel(level)
        return _logger
    logger = logging.getLogger("medialib")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("[%(levelname)s] %(asctime)s %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if level is None:
        level = logging.DEBUG if DEBUG_ON else logging.INFO
    logger.setLevel(level)
    _logger = logger
    return logger


def debug(msg: str) -> None:
    """Log a debug message if debugging is enabled."""
    if DEBUG_ON:
        setup_logger().debug(msg)
