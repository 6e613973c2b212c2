import sys

from loguru import logger

from turfease import settings


def configure_logging(debug: bool | None = None) -> None:
    """Replace loguru's default sink with a stderr sink at the configured level."""
    if debug is None:
        debug = settings.DEBUG
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO")
