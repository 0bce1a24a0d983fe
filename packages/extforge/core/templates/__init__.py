"""Jinja2 templates for generated extension files."""

from extforge.core.templates.renderer import (
    TEMPLATE_DIR,
    LoadError,
    RenderError,
    TemplateRenderer,
)

__all__ = [
    "TEMPLATE_DIR",
    "LoadError",
    "RenderError",
    "TemplateRenderer",
]
