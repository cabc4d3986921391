"""Logging for the ``spend_analytics`` package.

Library modules acquire loggers through ``get_logger("spend_analytics.<module>")``
and never attach handlers. Entrypoints (the CLI ``--log-level`` callback) call
``configure_logging`` once; until then the package logger only carries a
``NullHandler``.

The level comes from, in order: the explicit argument, the
``SPEND_ANALYTICS_LOG_LEVEL`` environment variable, ``WARNING``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "spend_analytics"
LOG_LEVEL_ENV = "SPEND_ANALYTICS_LOG_LEVEL"
DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def _coerce(value: int | str) -> int | None:
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    numeric = logging.getLevelNamesMapping().get(text)
    return numeric if isinstance(numeric, int) else None


def resolve_level(level: int | str | None = None) -> int:
    """Return a numeric logging level.

    Unknown names fall through to the environment variable and then to
    ``logging.WARNING``.
    """
    if level is not None:
        coerced = _coerce(level)
        if coerced is not None:
            return coerced
    env_val = os.getenv(LOG_LEVEL_ENV)
    if env_val:
        coerced = _coerce(env_val)
        if coerced is not None:
            return coerced
    return logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    force: bool = False,
) -> logging.Logger:
    """Attach the single package ``StreamHandler``.

    Parameters
    ----------
    level:
        ``int`` or level name; see :func:`resolve_level`.
    fmt:
        Format string, ``DEFAULT_FORMAT`` when omitted.
    stream:
        Handler stream, ``sys.stderr`` by default so CLI output on stdout stays
        clean.
    force:
        Replace an earlier configuration instead of keeping it.
    """
    global _handler

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None and not force:
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    _handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; silent until ``configure_logging`` runs."""
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "LOG_LEVEL_ENV",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "resolve_level",
]
