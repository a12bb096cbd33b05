"""Logging configuration for gitsnap.

Modules obtain their logger through ``get_logger(__name__)`` and attach structured context with
``extra={...}``. ``configure_logging`` installs a single stderr handler whose formatter renders that
context as ``key=value`` pairs after the message.
"""

from __future__ import annotations

import logging
import sys

from gitsnap.config import LOG_LEVEL

ROOT_LOGGER_NAME = "gitsnap"

# Attributes present on every ``LogRecord``; everything else was passed through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    """Formatter that appends the ``extra`` fields of a record to the formatted message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if not extras:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} | {rendered}"


def configure_logging(level: str | int = LOG_LEVEL) -> None:
    """Install the gitsnap stderr handler on the package logger.

    Calling this more than once replaces the handler instead of stacking a new one.

    Parameters
    ----------
    level : str | int
        Logging level for the ``gitsnap`` logger (default: ``GITSNAP_LOG_LEVEL`` or ``WARNING``).

    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_gitsnap_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ExtraFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._gitsnap_handler = True  # type: ignore[attr-defined]  # noqa: SLF001
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for ``name``, nested under the ``gitsnap`` logger.

    Parameters
    ----------
    name : str
        Usually the ``__name__`` of the calling module.

    Returns
    -------
    logging.Logger
        The logger instance.

    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
