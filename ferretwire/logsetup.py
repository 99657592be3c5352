"""Process-wide logging configuration."""

from __future__ import annotations

import logging

_HANDLER_NAME = "ferretwire"
_FORMAT = "%(asctime)s\t%(levelname)s\t%(name)s\t%(filename)s:%(lineno)d\t%(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown logging level: {level!r}")
    return resolved


def setup(level: int | str) -> logging.Logger:
    """Configure the root logger for development-style output at the given level.

    Warnings issued through the warnings module are routed into logging too.
    Calling it again replaces the previous configuration.
    """
    numeric = _resolve_level(level)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric)

    logging.captureWarnings(True)
    return root