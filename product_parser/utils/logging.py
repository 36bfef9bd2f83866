from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging once, for the CLI and the API server.
    The engine itself only logs through module-level loggers.
    """
    if level is None:
        level = os.getenv("PARSER_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # aiohttp is chatty at DEBUG about connection pooling.
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))
