"""Configuration management for extforge."""

from extforge.core.config.loader import (
    detect_format,
    load_app_config,
    load_config,
    load_project_list,
)
from extforge.core.config.models import (
    AppConfig,
    BuildConfiguration,
    CompileTarget,
    LoggingConfig,
    RuntimeNames,
    ToolchainConfig,
    Topology,
    default_description,
)

__all__ = [
    # Loaders
    "detect_format",
    "load_app_config",
    "load_config",
    "load_project_list",
    # Models
    "AppConfig",
    "BuildConfiguration",
    "CompileTarget",
    "LoggingConfig",
    "RuntimeNames",
    "ToolchainConfig",
    "Topology",
    "default_description",
]
