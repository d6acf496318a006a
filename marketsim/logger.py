"""Plain stdout logging in the ``LEVEL - message`` form."""

from __future__ import annotations

import logging
import sys

_LEVEL_NAMES = {logging.WARNING: "WARN", logging.CRITICAL: "ERROR"}


class _SimpleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        name = _LEVEL_NAMES.get(record.levelno, record.levelname)
        return f"{name} - {record.getMessage()}"


class _SimpleHandler(logging.StreamHandler):
    pass


def setup_logging(level: int | str = logging.INFO) -> logging.Handler:
    """Install the stdout handler on the root logger.

    ``level`` must name a known level. Whatever is asked for, the threshold
    ends at INFO: the handler never emits records below it.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"unknown log level: {level!r}")
    elif not isinstance(level, int) or isinstance(level, bool):
        raise ValueError(f"unknown log level: {level!r}")

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, _SimpleHandler)]:
        root.removeHandler(existing)

    handler = _SimpleHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(_SimpleFormatter())
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return handler