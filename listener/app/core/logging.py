"""Loguru sink setup for the listener process."""
from __future__ import annotations

import sys
from typing import Any

from loguru import logger

from listener.app.core import SERVICE_NAME

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[service_name]} | {extra[event]} | {message} {extra}"
)


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Replace loguru's default sink with a single stderr sink.

    With json=True every record is serialized, bound kwargs included, so
    aggregators can filter on `event`.
    """
    logger.remove()
    logger.configure(extra={"service_name": SERVICE_NAME, "event": "-"})
    sink_kwargs: dict[str, Any] = {"level": level.upper(), "backtrace": False}
    if json:
        logger.add(sys.stderr, serialize=True, **sink_kwargs)
    else:
        logger.add(sys.stderr, format=_TEXT_FORMAT, **sink_kwargs)
