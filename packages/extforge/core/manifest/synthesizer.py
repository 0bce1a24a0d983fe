"""Extension manifest synthesis (manifest version 3)."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from extforge.core.config.models import BuildConfiguration, Topology
from extforge.core.shims.generator import CONTENT_SCRIPT, CONTENT_STYLE, POPUP_PAGE
from extforge.core.utils.json import dumps_json

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"

BASE_PERMISSIONS = ["activeTab"]
OVERLAY_PERMISSIONS = ["scripting", "storage"]

ICONS = {
    "16": "icons/Icon-192.png",
    "48": "icons/Icon-192.png",
    "128": "icons/Icon-512.png",
}

# Superset covering both the JavaScript and the WebAssembly bundle layouts.
WEB_ACCESSIBLE_RESOURCES = [
    "assets/*",
    "canvaskit/*",
    "canvaskit/skwasm.js",
    "canvaskit/skwasm.wasm",
    "canvaskit/skwasm_heavy.js",
    "canvaskit/skwasm_heavy.wasm",
    "canvaskit/canvaskit.js",
    "canvaskit/canvaskit.wasm",
    "*.js",
    "*.mjs",
    "*.wasm",
    "flutter.js",
    "flutter_bootstrap.js",
    "flutter_init.js",
    "flutter_service_worker.js",
    "main.dart.js",
    "main.dart.mjs",
    "main.dart.wasm",
]

EXTENSION_PAGES_CSP = (
    "script-src 'self' 'wasm-unsafe-eval'; object-src 'self'; "
    "connect-src 'self' data: blob: https://fonts.gstatic.com; "
    "font-src 'self' https://fonts.gstatic.com;"
)


class WebAccessibleResources(BaseModel):
    """Package files readable from web pages."""

    resources: list[str]
    matches: list[str] = Field(default_factory=lambda: ["<all_urls>"])

    model_config = ConfigDict(frozen=True, extra="forbid")


class PopupAction(BaseModel):
    """Toolbar action opening the popup page."""

    default_popup: str = POPUP_PAGE
    default_title: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class ContentScript(BaseModel):
    """Content script injected into matching pages."""

    matches: list[str] = Field(default_factory=lambda: ["<all_urls>"])
    js: list[str] = Field(default_factory=lambda: [CONTENT_SCRIPT])
    css: list[str] = Field(default_factory=lambda: [CONTENT_STYLE])
    run_at: Literal["document_start", "document_end", "document_idle"] = "document_end"

    model_config = ConfigDict(frozen=True, extra="forbid")


class ContentSecurityPolicy(BaseModel):
    extension_pages: str = EXTENSION_PAGES_CSP

    model_config = ConfigDict(frozen=True, extra="forbid")


class ManifestDescriptor(BaseModel):
    """A version 3 extension manifest.

    Exactly one activation block is present: ``action`` for the popup
    topology or ``content_scripts`` for the overlay topology.
    """

    manifest_version: Literal[3] = 3
    name: str
    version: str
    description: str
    permissions: list[str]
    icons: dict[str, str]
    web_accessible_resources: list[WebAccessibleResources]
    action: PopupAction | None = None
    content_scripts: list[ContentScript] | None = None
    content_security_policy: ContentSecurityPolicy = Field(default_factory=ContentSecurityPolicy)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _single_activation_block(self) -> ManifestDescriptor:
        has_action = self.action is not None
        has_scripts = bool(self.content_scripts)
        if has_action == has_scripts:
            raise ValueError(
                "Manifest must declare exactly one of 'action' or 'content_scripts'"
            )
        return self

    def to_manifest_dict(self) -> dict[str, Any]:
        """Plain dict in manifest key order, without absent blocks."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        """Serialize as written to ``manifest.json`` (indent 2)."""
        return dumps_json(self.to_manifest_dict(), indent=2)


def synthesize(config: BuildConfiguration) -> ManifestDescriptor:
    """Build the manifest for a configuration.

    Deterministic: the same configuration always yields the same manifest.

    Args:
        config: Build configuration

    Returns:
        Validated ManifestDescriptor

    Example:
        >>> manifest = synthesize(BuildConfiguration(output_dir=Path("ext")))
        >>> manifest.action.default_popup
        'popup.html'
    """
    fields: dict[str, Any] = {
        "name": config.name,
        "version": config.version,
        "description": config.description,
        "permissions": list(BASE_PERMISSIONS),
        "icons": dict(ICONS),
        "web_accessible_resources": [
            WebAccessibleResources(resources=list(WEB_ACCESSIBLE_RESOURCES))
        ],
    }

    if config.topology is Topology.POPUP:
        fields["action"] = PopupAction(default_title=config.name)
    else:
        fields["content_scripts"] = [ContentScript()]
        fields["permissions"] += OVERLAY_PERMISSIONS

    manifest = ManifestDescriptor(**fields)
    logger.debug(f"Synthesized {config.topology.value} manifest for '{config.name}'")
    return manifest
