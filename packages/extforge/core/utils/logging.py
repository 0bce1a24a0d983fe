"""Logging setup for extforge commands.

Records go to stderr (or a file) as plain text or as JSON lines. Context
such as ``project_id`` or ``stage_id`` is attached through ``get_logger``
and lands in the JSON ``context`` object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord carries; anything else was passed as extra context.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

_QUIET_LOGGERS = ("asyncio",)


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record.

    Shape::

        {"level": "INFO", "message": "...", "timestamp": "<ISO 8601, UTC>",
         "context": {"logger_name": ..., "module": ..., "function": ...,
                     "line": ..., "process": ..., <extra fields>}}

    Records with ``exc_info`` also get ``error_type``, ``error_message`` and
    ``stack_trace`` in their context.
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }

        exc_type, exc_value, _ = record.exc_info or (None, None, None)
        if exc_type is not None:
            context["error_type"] = exc_type.__name__
            context["error_message"] = str(exc_value)
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        context.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        return json.dumps(
            {
                "level": record.levelname,
                "message": record.getMessage(),
                "timestamp": timestamp.isoformat(),
                "context": context,
            },
            default=str,
        )


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Install a single root handler, replacing any configured before.

    Args:
        level: Level name, case-insensitive
        format_string: Text format; ignored when ``structured`` is set
        filename: Log file path. Without one, records go to stderr and stdout
            is left to command output.
        structured: Emit JSON lines through ``StructuredJSONFormatter``

    Examples:
        >>> configure_logging(level="DEBUG")
        >>> configure_logging(structured=True, filename="build.jsonl")
    """
    handler: logging.Handler = (
        logging.FileHandler(filename, encoding="utf-8")
        if filename
        else logging.StreamHandler(sys.stderr)
    )
    handler.setFormatter(
        StructuredJSONFormatter()
        if structured
        else logging.Formatter(format_string or DEFAULT_FORMAT)
    )

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Return the named logger, wrapped in an adapter when context is given.

    Example:
        >>> log = get_logger(__name__, project_id="notes")
        >>> log.info("Build started")
    """
    base = logging.getLogger(name)
    return logging.LoggerAdapter(base, context) if context else base
