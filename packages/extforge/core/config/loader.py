"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from extforge.core.config.models import AppConfig
from extforge.core.utils.json import read_json

if TYPE_CHECKING:
    from extforge.core.coordinator.models import ProjectList

logger = logging.getLogger(__name__)

# Looked up in the working directory, in order, when no path is given.
_DEFAULT_APP_CONFIG_PATHS = (Path("extforge.yaml"), Path("extforge.yml"), Path("extforge.json"))


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("extforge.json")
        'json'
        >>> detect_format("projects.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            return read_json(path)
        except Exception as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    try:
        with path.open("r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    # safe_load returns None for empty files
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(content).__name__}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    Args:
        path: Explicit config path. When None, the first existing default
              (extforge.yaml, extforge.yml, extforge.json) is used, and
              defaults apply if none exists.

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValidationError: If config is invalid
    """
    if path is not None:
        return AppConfig.model_validate(load_config(path))

    for candidate in _DEFAULT_APP_CONFIG_PATHS:
        if candidate.exists():
            logger.debug(f"Using app config {candidate}")
            return AppConfig.model_validate(load_config(candidate))

    return AppConfig()


def load_project_list(path: str | Path) -> ProjectList:
    """Load and validate a multi-project bundle definition.

    Relative directories in the file are resolved against the file's own
    directory.

    Args:
        path: Path to project list file (.json, .yaml, or .yml)

    Returns:
        Validated ProjectList instance

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the project list is invalid

    Example:
        >>> projects = load_project_list("projects.yaml")
        >>> [p.id for p in projects.projects]
        ['app_a', 'app_b']
    """
    from extforge.core.coordinator.models import ProjectList

    path = Path(path)
    project_list = ProjectList.model_validate(load_config(path))
    return project_list.resolve_paths(path.parent)
