# taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys

_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "openai", "passlib")


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configure logging once, at application start:
    - a single stderr handler with a timestamped format
    - third-party libraries limited to WARNING unless SQL_ECHO is asked for

    Calling it again replaces the handler instead of stacking duplicates.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        if getattr(h, "_taskflow_handler", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler._taskflow_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
