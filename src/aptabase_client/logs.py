"""Logging set-up for applications embedding the client."""

from __future__ import annotations

import logging

LOGGER_NAME = "aptabase_client"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO, debug: bool = False) -> logging.Logger:
    """
    Attach a stream handler to the ``aptabase_client`` logger.

    The client only logs through module loggers and never configures
    logging on import; call this when the host application has no
    logging set-up of its own. ``debug=True`` forces DEBUG level, which
    shows every queued event and outgoing batch.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else level)

    if not any(getattr(h, "_aptabase", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._aptabase = True
        logger.addHandler(handler)

    return logger
