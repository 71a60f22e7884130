# File: shadow_translate/core/logging_config.py
"""
Logging setup for shadow-translate.

The library only creates module loggers; applications call
``configure_logging`` (or their own logging config) to see the records.
"""

import logging
from typing import Optional

from shadow_translate.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.getLogger("shadow_translate").addHandler(logging.NullHandler())


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the package logger.

    Args:
        level: Log level name; defaults to TRANSLATION_LOG_LEVEL
    """
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    package_logger = logging.getLogger("shadow_translate")
    package_logger.setLevel(level or settings.TRANSLATION_LOG_LEVEL)
    if not settings.LOG_TRANSLATION_OPERATIONS:
        package_logger.setLevel(logging.WARNING)
