"""Logging for the ledgerwise packages.

Modules log through ``get_logger("ledgerwise.<module>")`` and stay silent
until the host process calls :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

from config.settings import get_settings

ROOT_LOGGER = "ledgerwise"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

__all__ = ["ROOT_LOGGER", "configure_logging", "get_logger"]


def configure_logging(
    level: Optional[int | str] = None,
    *,
    stream: IO[str] = sys.stderr,
    fmt: str = _FORMAT,
) -> logging.Logger:
    """Route ``ledgerwise`` records to ``stream``.

    ``level`` defaults to ``EngineSettings.log_level``. Calling it again
    replaces the handler rather than adding a second one.
    """

    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = level.strip().upper()

    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    root.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
