from __future__ import annotations

import logging

from fleetops.core.config import get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "fleetops"


def configure_logging(level: str | int | None = None) -> None:
    """Attach a single stream handler to the ``fleetops`` logger.

    Safe to call more than once (uvicorn reload, test sessions); the handler
    is only installed the first time.
    """
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("fleetops")
    logger.setLevel(level)

    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
