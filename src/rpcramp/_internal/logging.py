"""Logging configuration for the ``rpcramp`` logger namespace.

Every module logs through a child of ``rpcramp`` obtained with
:func:`get_logger`. Nothing is emitted until :func:`setup_logging` attaches
the stderr handler, which the CLI does on every invocation.

Engine records may carry ramp context through ``extra``: the connection
count of the current step and the worker index. The JSON formatter emits
these as top-level keys so a run can be filtered step by step.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_ROOT = "rpcramp"
_HANDLER_NAME = "rpcramp-stderr"
_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes engine code attaches with ``extra=``
_CONTEXT_FIELDS = ("connections", "worker_id")


class _JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Keys: ``timestamp`` (ISO 8601, UTC), ``level``, ``logger``, ``message``,
    any ramp context present on the record and, when a traceback is
    attached, ``exception``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def level_from_verbosity(verbosity: int) -> int:
    """Translate the number of ``-v`` flags into a logging level.

    0 gives ``WARNING``, 1 gives ``INFO`` and anything higher ``DEBUG``.
    """
    levels = (logging.WARNING, logging.INFO)
    if verbosity < 0:
        return logging.WARNING
    return levels[verbosity] if verbosity < len(levels) else logging.DEBUG


def _make_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)


def _own_handler(logger: logging.Logger) -> logging.StreamHandler[Any] | None:
    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME and isinstance(handler, logging.StreamHandler):
            return handler
    return None


def setup_logging(
    level: int = logging.WARNING,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Point the ``rpcramp`` stderr handler at the current stderr.

    The handler is created on the first call. Later calls reuse it and
    apply the new level and format, and rebind it to whatever
    ``sys.stderr`` is at that moment, so repeated in-process invocations
    (several CLI runs, or a test runner swapping streams) never write to
    a stale stream. Handlers attached by other code are left alone.

    Args:
        level: Threshold for the namespace, e.g. ``logging.INFO``.
        json_format: Emit one JSON object per line instead of plain text.

    Returns:
        The ``rpcramp`` logger.
    """
    root = logging.getLogger(_ROOT)
    root.setLevel(level)

    handler = _own_handler(root)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        root.addHandler(handler)
    else:
        handler.setStream(sys.stderr)

    handler.setLevel(level)
    handler.setFormatter(_make_formatter(json_format))
    # Records stop here; the application's root logger never sees them twice
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger("rpcramp.<name>")``."""
    return logging.getLogger(f"{_ROOT}.{name}")
