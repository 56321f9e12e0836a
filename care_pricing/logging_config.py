import logging
import os

LOGGER_NAME = "care_pricing"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a stream handler to the package logger once.

    Level defaults to CARE_PRICING_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.environ.get("CARE_PRICING_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)
    else:
        for handler in logger.handlers:
            handler.setLevel(level)
    return logger
