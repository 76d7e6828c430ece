import logging
import sys

from .config import LOG_LEVEL

LOGGER_NAME = "quotemaker_firestoredb"


def _build_logger() -> logging.Logger:
    package_logger = logging.getLogger(LOGGER_NAME)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    return package_logger


logger = _build_logger()
