"""Logging configuration helpers."""

import logging

# HTTP client libraries log every request at INFO, including model streams.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: str = "INFO") -> None:
    """Route ``gainchef`` logs to one stream handler at the given level."""
    logger = logging.getLogger("gainchef")
    logger.setLevel(logging.getLevelName(level.upper()))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s: %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
