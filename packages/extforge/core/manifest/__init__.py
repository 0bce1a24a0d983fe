"""Extension manifest synthesis."""

from extforge.core.manifest.synthesizer import (
    EXTENSION_PAGES_CSP,
    MANIFEST_FILE,
    WEB_ACCESSIBLE_RESOURCES,
    ContentScript,
    ManifestDescriptor,
    PopupAction,
    synthesize,
)

__all__ = [
    "EXTENSION_PAGES_CSP",
    "MANIFEST_FILE",
    "WEB_ACCESSIBLE_RESOURCES",
    "ContentScript",
    "ManifestDescriptor",
    "PopupAction",
    "synthesize",
]
