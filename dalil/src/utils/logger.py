"""
Dalil - Logging
================
Every module logs through ``get_logger(__name__)``; all loggers share
one stdout handler and one line layout::

    2026-01-01 12:00:00 | INFO     | dalil.src.core.retrieval_engine | [RETRIEVAL] ...

Level resolution, first match wins:
  1. the ``level`` argument to ``get_logger``
  2. ``set_level()`` (the CLI's ``--verbose``)
  3. ``settings.LOG_LEVEL``
  4. ``settings.ENV``: ``dev`` → DEBUG, ``prod`` → WARNING

Records do not propagate to the root logger, so a host application
with its own logging config does not print them twice.
"""

import logging
import sys

from dalil.config.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_BY_ENV = {"dev": logging.DEBUG, "prod": logging.WARNING}

_handler: logging.Handler | None = None
_override: int | None = None
_managed: set[str] = set()


def default_level() -> int:
    if _override is not None:
        return _override
    if settings.LOG_LEVEL:
        return logging.getLevelName(settings.LOG_LEVEL)
    return _LEVEL_BY_ENV.get(settings.ENV, logging.INFO)


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return _handler


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if name not in _managed:
        logger.addHandler(_shared_handler())
        logger.setLevel(level if level is not None else default_level())
        logger.propagate = False
        _managed.add(name)
    return logger


def set_level(level: int | str) -> None:
    """Switch every Dalil logger, existing and future, to *level*."""
    global _override
    _override = logging.getLevelName(level) if isinstance(level, str) else level
    for name in _managed:
        logging.getLogger(name).setLevel(_override)
