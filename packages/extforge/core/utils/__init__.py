"""Shared utilities for extforge."""

from extforge.core.utils.json import dumps_json, read_json
from extforge.core.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "dumps_json",
    "get_logger",
    "read_json",
]
