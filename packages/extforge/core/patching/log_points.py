"""Debug instrumentation points embedded in generated JavaScript.

Every console statement the pipeline writes into the extension is a named
``LogPoint``. The table is resolved once per run: with debug mode on each point
becomes its console call, otherwise a no-op comment marker that keeps the
point's name visible in the output.
"""

from __future__ import annotations

from enum import Enum

NO_OP_PREFIX = "// [extforge]"


class LogPoint(str, Enum):
    """Named console statements used by the generated runtime code."""

    # Bootstrap instrumentation
    PATCH_START = "patch_start"
    PATCH_END = "patch_end"
    EXT_ID = "ext_id"
    EXT_ID_ERR = "ext_id_err"
    FETCH_INT = "fetch_int"
    FETCH_RED = "fetch_red"
    IMPORT_INT = "import_int"
    IMPORT_RED = "import_red"
    URL_JOIN = "url_join"
    CDN_BLOCKED = "cdn_blocked"
    CDN_REDIRECT = "cdn_redirect"
    BUILD_CONFIG_WASM = "build_config_wasm"
    BUILD_CONFIG_JS = "build_config_js"
    INIT_START = "init_start"
    WASM_LOAD = "wasm_load"
    WASM_ENTRYPOINT = "wasm_entrypoint"
    WASM_HOST = "wasm_host"
    WASM_HOST_ERR = "wasm_host_err"
    WASM_ENGINE = "wasm_engine"
    WASM_SUCCESS = "wasm_success"
    WASM_ERROR = "wasm_error"
    JS_LOAD = "js_load"
    JS_URL = "js_url"
    JS_URL_WARN = "js_url_warn"
    JS_ENTRYPOINT = "js_entrypoint"
    JS_HOST = "js_host"
    JS_HOST_ERR = "js_host_err"
    JS_ENGINE = "js_engine"
    JS_SUCCESS = "js_success"
    JS_ERROR = "js_error"

    # Popup shim
    INIT_CONFIG = "init_config"
    POPUP_FETCH_RED = "popup_fetch_red"
    POPUP_BOOTSTRAP = "popup_bootstrap"

    # Overlay shims
    CONTENT_CONFIG = "content_config"
    CONTENT_FETCH_INT = "content_fetch_int"
    CONTENT_FETCH_RED = "content_fetch_red"
    CONTENT_IMPORT_INT = "content_import_int"
    CONTENT_IMPORT_RED = "content_import_red"
    CONTENT_READY = "content_ready"
    CONTENT_DELEGATED = "content_delegated"
    CONTENT_LOADED = "content_loaded"
    OVERLAY_CREATE = "overlay_create"
    OVERLAY_CREATED = "overlay_created"
    OVERLAY_SHOWN = "overlay_shown"
    OVERLAY_INIT = "overlay_init"
    OVERLAY_HIDDEN = "overlay_hidden"
    CONTENT_INIT = "content_init"
    CONTENT_SKIP = "content_skip"
    CONTENT_EXT_ID = "content_ext_id"
    CONTENT_INIT_SUCCESS = "content_init_success"
    CONTENT_INIT_ERROR = "content_init_error"
    CONTENT_BOOTSTRAP_SUCCESS = "content_bootstrap_success"
    CONTENT_BOOTSTRAP_ERROR = "content_bootstrap_error"
    CONTENT_INITIALIZED = "content_initialized"


# (console method, JavaScript argument list)
_STATEMENTS: dict[LogPoint, tuple[str, str]] = {
    LogPoint.PATCH_START: ("log", "'Applying extension runtime patch...'"),
    LogPoint.PATCH_END: ("log", "'Extension runtime patch applied'"),
    LogPoint.EXT_ID: ("log", "'Extension ID detected:', extensionId"),
    LogPoint.EXT_ID_ERR: (
        "error",
        "'Extension ID not detected - resource URLs will not resolve'",
    ),
    LogPoint.FETCH_INT: ("log", "'Fetch intercepted:', url"),
    LogPoint.FETCH_RED: ("log", "'Fetch redirected:', url, '->', newUrl"),
    LogPoint.IMPORT_INT: ("log", "'Dynamic import intercepted:', url"),
    LogPoint.IMPORT_RED: ("log", "'Dynamic import redirected:', url, '->', newUrl"),
    LogPoint.URL_JOIN: ("log", "'URL helper resolved:', parts, '->', fullUrl"),
    LogPoint.CDN_BLOCKED: ("log", "'Blocking CDN CanvasKit load:', value"),
    LogPoint.CDN_REDIRECT: ("log", "'Redirecting CanvasKit to local file:', localPath"),
    LogPoint.BUILD_CONFIG_WASM: ("log", "'Setting build config for WASM build'"),
    LogPoint.BUILD_CONFIG_JS: ("log", "'Setting build config for JavaScript build'"),
    LogPoint.INIT_START: ("log", "'Starting engine initialization for the extension...'"),
    LogPoint.WASM_LOAD: ("log", "'Loading WASM build with Skwasm renderer...'"),
    LogPoint.WASM_ENTRYPOINT: ("log", "'WASM entrypoint loaded'"),
    LogPoint.WASM_HOST: ("log", "'Using extension container as host element:', container"),
    LogPoint.WASM_HOST_ERR: ("error", "'Extension container not found, falling back to body'"),
    LogPoint.WASM_ENGINE: ("log", "'WASM engine initialized, running app...'"),
    LogPoint.WASM_SUCCESS: ("log", "'WASM app started in extension container'"),
    LogPoint.WASM_ERROR: ("error", "'Error initializing WASM engine:', error"),
    LogPoint.JS_LOAD: ("log", "'Loading JavaScript build with CanvasKit renderer...'"),
    LogPoint.JS_URL: ("log", "'Using extension URL for entrypoint:', url"),
    LogPoint.JS_URL_WARN: ("warn", "'Extension ID not available, using relative entrypoint URL'"),
    LogPoint.JS_ENTRYPOINT: ("log", "'JavaScript entrypoint loaded'"),
    LogPoint.JS_HOST: ("log", "'Using extension container as host element:', container"),
    LogPoint.JS_HOST_ERR: ("error", "'Extension container not found, falling back to body'"),
    LogPoint.JS_ENGINE: ("log", "'JavaScript engine initialized, running app...'"),
    LogPoint.JS_SUCCESS: ("log", "'JavaScript app started in extension container'"),
    LogPoint.JS_ERROR: ("error", "'Error initializing JavaScript engine:', error"),
    LogPoint.INIT_CONFIG: ("log", "'Configuring runtime for the extension popup...'"),
    LogPoint.POPUP_FETCH_RED: ("log", "'Popup fetch redirected:', url"),
    LogPoint.POPUP_BOOTSTRAP: ("log", "'Loading patched bootstrap script'"),
    LogPoint.CONTENT_CONFIG: ("log", "'Configuring runtime for the content script page...'"),
    LogPoint.CONTENT_FETCH_INT: ("log", "'Fetch intercepted:', url"),
    LogPoint.CONTENT_FETCH_RED: ("log", "'Fetch redirected:', url, '->', newUrl"),
    LogPoint.CONTENT_IMPORT_INT: ("log", "'Dynamic import intercepted:', url"),
    LogPoint.CONTENT_IMPORT_RED: ("log", "'Dynamic import redirected:', url, '->', newUrl"),
    LogPoint.CONTENT_READY: ("log", "'Loader ready, content script initialization starting...'"),
    LogPoint.CONTENT_DELEGATED: ("log", "'Engine initialization delegated to patched bootstrap'"),
    LogPoint.CONTENT_LOADED: ("log", "'Extension content script loaded'"),
    LogPoint.OVERLAY_CREATE: ("log", "'Creating overlay window...'"),
    LogPoint.OVERLAY_CREATED: ("log", "'Overlay window created'"),
    LogPoint.OVERLAY_SHOWN: ("log", "'Overlay shown'"),
    LogPoint.OVERLAY_INIT: ("log", "'Starting initialization after overlay is ready...'"),
    LogPoint.OVERLAY_HIDDEN: ("log", "'Overlay hidden'"),
    LogPoint.CONTENT_INIT: ("log", "'Initializing app in content script...'"),
    LogPoint.CONTENT_SKIP: ("log", "'App already initialized, skipping'"),
    LogPoint.CONTENT_EXT_ID: ("log", "'Setting global extension ID:', extensionId"),
    LogPoint.CONTENT_INIT_SUCCESS: ("log", "'Init script loaded in content script'"),
    LogPoint.CONTENT_INIT_ERROR: ("error", "'Failed to load init script in content script'"),
    LogPoint.CONTENT_BOOTSTRAP_SUCCESS: ("log", "'Bootstrap script loaded in content script'"),
    LogPoint.CONTENT_BOOTSTRAP_ERROR: (
        "error",
        "'Failed to load bootstrap script in content script'",
    ),
    LogPoint.CONTENT_INITIALIZED: ("log", "'Extension content script initialized'"),
}


def statement_for(point: LogPoint) -> str:
    """Return the console statement for a log point.

    Example:
        >>> statement_for(LogPoint.PATCH_END)
        "console.log('Extension runtime patch applied');"
    """
    method, args = _STATEMENTS[point]
    return f"console.{method}({args});"


def no_op_for(point: LogPoint) -> str:
    """Return the comment marker that replaces a disabled log point."""
    return f"{NO_OP_PREFIX} {point.name}"


def resolve_log_points(debug_mode: bool) -> dict[str, str]:
    """Resolve every log point for one run.

    Args:
        debug_mode: Emit console statements (True) or no-op markers (False)

    Returns:
        Map of log point name (e.g. ``"PATCH_START"``) to JavaScript text
    """
    render = statement_for if debug_mode else no_op_for
    return {point.name: render(point) for point in LogPoint}
