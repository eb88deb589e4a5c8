"""Shared logging helpers for the reconciler."""

from __future__ import annotations

import logging

from .errors import ConfigurationError

_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    # stdlib logging has no TRACE level
    "trace": logging.DEBUG,
}


def parse_log_level(value: str) -> int:
    """Translate a level name such as ``info`` or ``WARN`` into a logging level."""

    level = _LEVELS.get(value.strip().lower())
    if level is None:
        choices = ", ".join(sorted(_LEVELS))
        raise ConfigurationError(f"Unknown log level {value!r}; expected one of: {choices}")
    return level


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Set up root logging for the controller process.

    Records carry the thread name so that worker output can be told apart.
    ``force=True`` replaces handlers installed earlier.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
