import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} [{level}] {name}: {message}"


def configure_logging(level: str = "INFO") -> None:
    """Route application logs to stdout at ``level``."""
    requested = (level or "INFO").upper()
    try:
        logger.level(requested)
        level = requested
    except ValueError:
        level = "INFO"

    # drop existing sinks so reloads don't duplicate output
    logger.remove()
    logger.add(sys.stdout, level=level, format=LOG_FORMAT)
    if level != requested:
        logger.warning("invalid log level {}, defaulting to INFO", requested)
