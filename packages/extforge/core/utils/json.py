"""JSON utilities with Path support."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _json_default(obj: Any) -> Any:
    """JSON serializer for types not supported by default."""
    if isinstance(obj, Path):
        return obj.as_posix()
    return str(obj)


def dumps_json(obj: Any, indent: int = 2) -> str:
    """Serialize an object the way it is written to disk (trailing newline included)."""
    return json.dumps(obj, indent=indent, ensure_ascii=False, default=_json_default) + "\n"


def read_json(path: str | Path) -> dict[str, Any]:
    """Read and parse JSON file.

    Args:
        path: Input file path

    Returns:
        Parsed JSON as dictionary
    """
    data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected JSON object, got {type(data).__name__}")
    return data
