"""Application entry rewriting for the overlay topology.

Several applications share one extension package in the overlay topology, each
under ``<target>/apps/<id>/``. ``patch_app_entry`` makes a compiled
``main.dart.js`` aware of where it was loaded from:

0. a helper capturing the script's own URL is injected at the top of the
   ``dartProgram`` IIFE,
1. the engine initializer handed to the loader is tagged with the app name,
2. ``AssetManager`` resolves assets against the app's own directory.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from extforge.core.patchset.models import PatchFailure

logger = logging.getLogger(__name__)

HELPER_MARKER = "// extforge: app location helpers"

_HELPER = """
  {marker}
  var extforgeScriptUrl = (document.currentScript && document.currentScript.src) || '';
  function extforgeAppBase() {{
    return extforgeScriptUrl.substring(0, extforgeScriptUrl.lastIndexOf('/') + 1);
  }}
  function extforgeAppName() {{
    var base = extforgeAppBase().replace(/\\/+$/, '');
    return base.substring(base.lastIndexOf('/') + 1);
  }}"""


@dataclass(frozen=True)
class AnchorEdit:
    """A single anchored rewrite.

    Attributes:
        name: Human-readable operation name
        pattern: Anchor pattern (first match is rewritten)
        replace: Builds the replacement from the anchor match
    """

    name: str
    pattern: re.Pattern[str]
    replace: Callable[[re.Match[str]], str]


def _inject_helper(match: re.Match[str]) -> str:
    return match.group(0) + _HELPER.format(marker=HELPER_MARKER)


def _tag_engine(match: re.Match[str]) -> str:
    indent = match.group("indent")
    return (
        f"{indent}var extforgeEngine = bootstrap.prepareEngineInitializer$0();\n"
        f"{indent}extforgeEngine.appname = extforgeAppName();\n"
        f"{indent}loader.didCreateEngineInitializer(extforgeEngine);"
    )


def _rebase_assets(match: re.Match[str]) -> str:
    return f"{match.group('head')}this._assetBase = extforgeAppBase();"


APP_ENTRY_EDITS: tuple[AnchorEdit, ...] = (
    AnchorEdit(
        name="inject app location helpers",
        pattern=re.compile(r"\(function dartProgram\(\)\s*\{"),
        replace=_inject_helper,
    ),
    AnchorEdit(
        name="tag engine initializer with app name",
        pattern=re.compile(
            r"(?P<indent>[ \t]*)loader\.didCreateEngineInitializer\(\s*"
            r"bootstrap\.prepareEngineInitializer\$0\(\)\s*\)\s*;"
        ),
        replace=_tag_engine,
    ),
    AnchorEdit(
        name="rebase AssetManager on the app directory",
        pattern=re.compile(
            r"(?P<head>AssetManager:\s*function AssetManager\((?P<arg>[\w$]+)\)\s*\{\s*)"
            r"this\._assetBase\s*=\s*(?P=arg)\s*;"
        ),
        replace=_rebase_assets,
    ),
)


def apply_anchor_edits(text: str, edits: tuple[AnchorEdit, ...]) -> str:
    """Apply anchored rewrites in order, all or nothing.

    Raises:
        PatchFailure: Naming the first edit whose anchor is missing
    """
    for index, edit in enumerate(edits):
        match = edit.pattern.search(text)
        if match is None:
            raise PatchFailure(f"anchor for '{edit.name}' not found", index)
        text = text[: match.start()] + edit.replace(match) + text[match.end() :]
    return text


def patch_app_entry(text: str) -> str:
    """Rewrite a compiled application entry for per-app hosting.

    Args:
        text: Original ``main.dart.js`` content

    Returns:
        Patched text (unchanged if it already carries the helpers)

    Raises:
        PatchFailure: If an anchor is missing; ``operation_index`` names it
    """
    if HELPER_MARKER in text:
        logger.debug("Application entry already patched")
        return text
    return apply_anchor_edits(text, APP_ENTRY_EDITS)
