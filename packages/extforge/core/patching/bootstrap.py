"""Bootstrap rewriting for the extension origin.

``patch_bootstrap`` removes the compiled bootstrap's automatic loader call and
build-config assignment, then appends an instrumentation block that makes every
resource resolution target ``chrome-extension://<id>/`` and starts the engine
inside the extension's container element.

The block is delimited by BEGIN/END markers; re-patching an already patched
file replaces the block instead of stacking a second one.
"""

from __future__ import annotations

import logging
import re

from extforge.core.config.models import BuildConfiguration
from extforge.core.patching.log_points import resolve_log_points
from extforge.core.patching.scanner import (
    ScanError,
    call_end,
    is_identifier_char,
    skip_literal,
    statement_end,
)
from extforge.core.patchset.models import PatchFailure
from extforge.core.templates.renderer import LoadError, RenderError, TemplateRenderer

logger = logging.getLogger(__name__)

BEGIN_MARKER = "// >>> extforge runtime patch BEGIN"
END_MARKER = "// <<< extforge runtime patch END"

# Engine revision written when the original build config does not name one.
DEFAULT_ENGINE_REVISION = "1c9c20e7c3dd48c66f400a24d48ea806b4ab312a"

# Operation indexes reported by PatchFailure.
OP_STRIP = 0
OP_APPEND = 1

_LOAD_ANCHOR = re.compile(r"_flutter\s*\.\s*loader\s*\.\s*load\s*\(")
_CONFIG_ANCHOR = re.compile(r"_flutter\s*\.\s*buildConfig\s*=(?!=)")
_GLOBAL_PREFIX = re.compile(r"(?<![\w$])(?:window|self|globalThis)\s*\.\s*$")
_ENGINE_REVISION = re.compile(r"""["']?engineRevision["']?\s*:\s*["']([0-9A-Za-z]+)["']""")

_BLOCK_SEPARATOR = "\n\n"


def contains_auto_load(text: str) -> bool:
    """Check whether code outside literals still calls the loader or sets the build config."""
    return bool(_find_statements(text))


def strip_auto_load(text: str) -> tuple[str, list[str]]:
    """Remove every automatic loader call and build-config assignment.

    Args:
        text: Bootstrap source

    Returns:
        Tuple of (stripped text, removed statements in source order)

    Raises:
        ScanError: If the source cannot be scanned
    """
    spans = _find_statements(text)
    if not spans:
        return text, []

    pieces: list[str] = []
    removed: list[str] = []
    last = 0
    for start, end in spans:
        pieces.append(text[last:start])
        removed.append(text[start:end])
        last = end
    pieces.append(text[last:])
    return "".join(pieces), removed


def split_instrumentation(text: str) -> tuple[str, str | None]:
    """Separate a previously appended instrumentation block from the original text.

    Returns:
        Tuple of (text without the block, the block or None)
    """
    begin = text.find(BEGIN_MARKER)
    if begin == -1:
        return text, None

    end = text.find(END_MARKER, begin)
    if end == -1:
        end = len(text)
    else:
        end += len(END_MARKER)
        if text.startswith("\n", end):
            end += 1

    base = text[:begin]
    if base.endswith(_BLOCK_SEPARATOR):
        base = base[: -len(_BLOCK_SEPARATOR)]
    return base + text[end:], text[begin:end]


def extract_engine_revision(*sources: str) -> str | None:
    """Return the first ``engineRevision`` value found in the given sources."""
    for source in sources:
        match = _ENGINE_REVISION.search(source)
        if match:
            return match.group(1)
    return None


def render_instrumentation(
    config: BuildConfiguration,
    engine_revision: str = DEFAULT_ENGINE_REVISION,
    log_points: dict[str, str] | None = None,
    renderer: TemplateRenderer | None = None,
) -> str:
    """Render the instrumentation block appended to the bootstrap."""
    renderer = renderer or TemplateRenderer()
    return renderer.render_file(
        "bootstrap_patch.js.j2",
        {
            "log": log_points if log_points is not None else resolve_log_points(config.debug_mode),
            "names": config.runtime_names,
            "is_binary": config.is_binary,
            "engine_revision": engine_revision,
            "begin_marker": BEGIN_MARKER,
            "end_marker": END_MARKER,
        },
    )


def patch_bootstrap(
    text: str,
    config: BuildConfiguration,
    log_points: dict[str, str] | None = None,
    renderer: TemplateRenderer | None = None,
) -> str:
    """Rewrite a compiled bootstrap for the extension origin.

    Args:
        text: Original ``flutter_bootstrap.js`` content
        config: Build configuration (compile target, debug mode, runtime names)
        log_points: Resolved log-point table (resolved from config if None)
        renderer: Template renderer to reuse

    Returns:
        Patched bootstrap text

    Raises:
        PatchFailure: If the source cannot be scanned or the block cannot be rendered

    Example:
        >>> patched = patch_bootstrap(original, config)
        >>> contains_auto_load(patched)
        False
    """
    base, previous_block = split_instrumentation(text)
    if previous_block is not None:
        logger.debug("Replacing previously appended instrumentation block")

    try:
        stripped, removed = strip_auto_load(base)
    except ScanError as e:
        raise PatchFailure(f"cannot scan bootstrap: {e}", OP_STRIP) from e

    if removed:
        logger.debug(f"Removed {len(removed)} auto-load statements from bootstrap")

    revision = extract_engine_revision(*removed, previous_block or "") or DEFAULT_ENGINE_REVISION

    try:
        block = render_instrumentation(config, revision, log_points, renderer)
    except (LoadError, RenderError) as e:
        raise PatchFailure(f"cannot render instrumentation: {e}", OP_APPEND) from e

    return stripped + _BLOCK_SEPARATOR + block


def _find_statements(text: str) -> list[tuple[int, int]]:
    """Locate loader calls and build-config assignments outside literals."""
    spans: list[tuple[int, int]] = []
    j = 0
    n = len(text)
    while j < n:
        end = skip_literal(text, j)
        if end is not None:
            j = end
            continue

        if text[j] == "_" and (j == 0 or not is_identifier_char(text[j - 1])):
            load = _LOAD_ANCHOR.match(text, j)
            if load:
                stop = call_end(text, load.end() - 1)
                spans.append((_statement_start(text, j), stop))
                j = stop
                continue
            assign = _CONFIG_ANCHOR.match(text, j)
            if assign:
                stop = statement_end(text, assign.end())
                spans.append((_statement_start(text, j), stop))
                j = stop
                continue
        j += 1
    return spans


def _statement_start(text: str, anchor: int) -> int:
    # Include an explicit global receiver such as ``window.`` in the removal.
    prefix = _GLOBAL_PREFIX.search(text, max(0, anchor - 32), anchor)
    return prefix.start() if prefix else anchor
