"""Runtime file template rendering with Jinja2.

Templates live in the ``files/`` directory beside this module and are rendered
in strict mode: a missing variable is an error, never an empty string.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "files"


class LoadError(Exception):
    """Raised when a template file cannot be found or read."""

    pass


class RenderError(Exception):
    """Raised when template rendering fails."""

    pass


class TemplateRenderer:
    """Renders the JavaScript, HTML, CSS and Markdown templates.

    Features:
    - Jinja2 strict mode (StrictUndefined)
    - Fail-fast on missing variables
    - Template sources cached per renderer

    Example:
        >>> renderer = TemplateRenderer()
        >>> text = renderer.render_file("popup.html.j2", variables)
    """

    def __init__(self, base_path: str | Path = TEMPLATE_DIR) -> None:
        """Initialize template renderer.

        Args:
            base_path: Directory containing ``*.j2`` templates
        """
        self.base_path = Path(base_path)
        self.env = Environment(
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._sources: dict[str, str] = {}

        logger.debug(f"TemplateRenderer initialized: base_path={self.base_path}")

    def load(self, name: str) -> str:
        """Load a template source.

        Args:
            name: Template file name (e.g. ``"content_script.js.j2"``)

        Returns:
            Template source text

        Raises:
            LoadError: If the template does not exist
        """
        if name not in self._sources:
            path = self.base_path / name
            if not path.is_file():
                raise LoadError(f"Template '{name}' does not exist at {path}")
            self._sources[name] = path.read_text(encoding="utf-8")
        return self._sources[name]

    def render(self, template: str, variables: dict[str, Any]) -> str:
        """Render template text with variables.

        Args:
            template: Template string (Jinja2 format)
            variables: Variables for template rendering

        Returns:
            Rendered template string

        Raises:
            RenderError: If rendering fails (missing variables, syntax errors, etc.)
        """
        try:
            return self.env.from_string(template).render(**variables)

        except UndefinedError as e:
            raise RenderError(f"Missing variable in template: {e}") from e

        except TemplateSyntaxError as e:
            raise RenderError(f"Invalid template syntax: {e}") from e

    def render_file(self, name: str, variables: dict[str, Any]) -> str:
        """Load and render a template file.

        Raises:
            LoadError: If the template does not exist
            RenderError: If rendering fails
        """
        try:
            return self.render(self.load(name), variables)
        except RenderError as e:
            raise RenderError(f"{name}: {e}") from e
