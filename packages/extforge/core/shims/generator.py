"""Runtime shim generation.

Produces the small host files each topology needs around the patched
bootstrap: ``popup.html`` and its ``flutter_init.js`` for the popup, or the
overlay ``content_script.js``/``content_script.css`` and the page-side
``flutter_init.js`` for the overlay.
"""

from __future__ import annotations

import logging

from extforge.core.config.models import BuildConfiguration, Topology
from extforge.core.patching.log_points import resolve_log_points
from extforge.core.templates.renderer import TemplateRenderer

logger = logging.getLogger(__name__)

INIT_SCRIPT = "flutter_init.js"
POPUP_PAGE = "popup.html"
CONTENT_SCRIPT = "content_script.js"
CONTENT_STYLE = "content_script.css"

# Output file -> template, per topology.
SHIM_TEMPLATES: dict[Topology, dict[str, str]] = {
    Topology.POPUP: {
        INIT_SCRIPT: "popup_init.js.j2",
        POPUP_PAGE: "popup.html.j2",
    },
    Topology.OVERLAY: {
        INIT_SCRIPT: "overlay_init.js.j2",
        CONTENT_SCRIPT: "content_script.js.j2",
        CONTENT_STYLE: "content_script.css.j2",
    },
}


def generate_shims(
    config: BuildConfiguration,
    log_points: dict[str, str] | None = None,
    renderer: TemplateRenderer | None = None,
) -> dict[str, str]:
    """Render the shim files for the configured topology.

    Args:
        config: Build configuration
        log_points: Resolved log-point table (resolved from config if None)
        renderer: Template renderer to reuse

    Returns:
        Map of output file name (relative to the package root) to content

    Raises:
        RenderError: If a template references an unknown variable

    Example:
        >>> shims = generate_shims(config)
        >>> sorted(shims)
        ['flutter_init.js', 'popup.html']
    """
    renderer = renderer or TemplateRenderer()
    variables = {
        "log": log_points if log_points is not None else resolve_log_points(config.debug_mode),
        "names": config.runtime_names,
        "name": config.name,
        "description": config.description,
        "width": config.popup_width,
        "height": config.popup_height,
    }

    shims = {
        filename: renderer.render_file(template, variables)
        for filename, template in SHIM_TEMPLATES[config.topology].items()
    }
    logger.debug(f"Generated {config.topology.value} shims: {sorted(shims)}")
    return shims
