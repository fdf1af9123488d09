"""Logging setup for the meteor-ddp command."""

import logging

from meteor_ddp.environment import get_log_level, parse_log_level

FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# websockets logs every frame at DEBUG, repeating our own SEND/RECEIVE lines
_FRAME_LOGGERS = ("websockets",)


def configure_logging(level_name: str | None = None) -> int:
    """Configure the root logger and return the level in effect.

    ``level_name`` wins over METEOR_DDP_LOG_LEVEL, which defaults to INFO.
    The websockets loggers never go below INFO.
    """
    try:
        if level_name is not None:
            level = parse_log_level(level_name)
        else:
            level = get_log_level("LOG_LEVEL", logging.INFO)
    except ValueError:
        # nothing is configured yet, so report through a bare root logger
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger(__name__).exception("Failed to configure logging")
        raise

    logging.basicConfig(level=level, format=FORMAT)
    for name in _FRAME_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    logging.getLogger(__name__).debug("Logging at %s", logging.getLevelName(level))
    return level
