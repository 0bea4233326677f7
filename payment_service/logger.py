"""
Service logger.

Usage:
    from payment_service.logger import get_logger
    logger = get_logger(__name__)
"""

import logging
import sys

from payment_service.config import settings

_logger = logging.getLogger("payment_service")

# uvicorn --reload imports the module again; keep a single handler
if not _logger.handlers:
    _logger.setLevel(settings.log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    _logger.addHandler(console_handler)
    _logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    if name == "payment_service" or name.startswith("payment_service."):
        return logging.getLogger(name)
    return _logger.getChild(name)
