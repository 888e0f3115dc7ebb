import logging
import sys

from app.config import settings

logger = logging.getLogger("rankpoints")

def configure_logging(level: str | None = None) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    ))
    logger.addHandler(handler)
    logger.setLevel((level or settings.LOG_LEVEL).upper())
