"""Runtime shims hosting the application inside the extension."""

from extforge.core.shims.generator import (
    CONTENT_SCRIPT,
    CONTENT_STYLE,
    INIT_SCRIPT,
    POPUP_PAGE,
    SHIM_TEMPLATES,
    generate_shims,
)

__all__ = [
    "CONTENT_SCRIPT",
    "CONTENT_STYLE",
    "INIT_SCRIPT",
    "POPUP_PAGE",
    "SHIM_TEMPLATES",
    "generate_shims",
]
