"""Logging configuration"""

import logging
import sys
from typing import Optional, Union

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up the root logger with consistent formatting

    Args:
        level: Logging level (number or name such as "DEBUG")
        format_string: Custom format string

    Returns:
        Configured root logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers
    if any(getattr(handler, "_hackpulse", False) for handler in logger.handlers):
        return logger

    # Create console handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler._hackpulse = True  # type: ignore[attr-defined]

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    return logger
