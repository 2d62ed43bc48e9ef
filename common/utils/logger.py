import logging
import sys

from common.config.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Returns a named logger writing to stdout.
    Safe to call repeatedly, the handler is attached only once per name.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(settings.LOG_LEVEL.upper())
        logger.propagate = False
    return logger
