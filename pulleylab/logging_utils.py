"""Shared logging helpers for PulleyLab components."""

from __future__ import annotations

import logging
from typing import Final

from pulleylab.models.settings import settings

_LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_ROOT: Final[str] = "pulleylab"


def _parse_level(level_str: str | None, default: int) -> int:
    if not level_str:
        return default
    level = logging.getLevelName(level_str.strip().upper())
    return level if isinstance(level, int) else default


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Return a logger under the `pulleylab` namespace that emits to stderr.

    Behavior:
    - If `level` is provided it takes precedence.
    - Otherwise `settings.LOG_LEVEL` is used (LOG_LEVEL env var or .env, e.g. DEBUG).
    - Falls back to INFO when the configured name is not a logging level.

    Calling it twice for the same name reuses the existing handler.
    """
    chosen_level = level if level is not None else _parse_level(settings.LOG_LEVEL, logging.INFO)

    qualified = name if name.startswith(_ROOT) else f"{_ROOT}.{name}"
    logger = logging.getLogger(qualified)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(chosen_level)
    logger.setLevel(chosen_level)
    logger.propagate = False
    return logger
