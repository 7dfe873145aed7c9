# =============================================================================
# lib/runtime.py - Runtime Environment Providers
# =============================================================================
# Describes where the process is running and what the host hands us:
# - NoEdgeRuntime: a plain server process (uvicorn, gunicorn, tests)
# - EdgeSandbox: a Cloudflare Python Worker exposing its binding set
#
# The provider is detected once (at startup or on first use) and then
# injected into the resolver, instead of probing the sandbox on every call.
#
# Usage:
#   from lib.runtime import get_runtime_provider
#   provider = get_runtime_provider()
#   bindings = provider.edge_bindings()  # None outside the sandbox
# =============================================================================

from __future__ import annotations

import importlib
import logging
import sys
from collections.abc import Mapping
from enum import Enum
from typing import Any

# Set up logging for this module
logger = logging.getLogger(__name__)

# Module the Workers runtime makes importable inside the sandbox
EDGE_RUNTIME_MODULE = "workers"

# JS module that exposes the binding set outside of a request handler
EDGE_ENV_SPECIFIER = "cloudflare:workers"


class ExecutionContext(str, Enum):
    """Which side of the app this interpreter is running on."""
    SERVER = "server"
    CLIENT = "client"


# =============================================================================
# Providers
# =============================================================================

class RuntimeProvider:
    """
    Base runtime provider.

    Subclasses describe one hosting environment. The resolver only ever
    calls edge_bindings() and reads execution_context.
    """

    name = "none"

    def __init__(self, execution_context: ExecutionContext = ExecutionContext.SERVER):
        self.execution_context = execution_context

    def edge_bindings(self) -> Any | None:
        """Return the sandbox binding set, or None when there isn't one."""
        return None

    @property
    def is_client(self) -> bool:
        return self.execution_context is ExecutionContext.CLIENT

    def __repr__(self) -> str:
        return f"{type(self).__name__}(execution_context={self.execution_context.value!r})"


class NoEdgeRuntime(RuntimeProvider):
    """Regular process - no sandbox bindings available."""

    name = "process"


class EdgeSandbox(RuntimeProvider):
    """Running inside the Workers sandbox with a binding set."""

    name = "edge"

    def __init__(
        self,
        bindings: Mapping[str, Any] | Any,
        execution_context: ExecutionContext = ExecutionContext.SERVER,
    ):
        super().__init__(execution_context)
        self._bindings = bindings

    def edge_bindings(self) -> Any | None:
        return self._bindings


# =============================================================================
# Detection
# =============================================================================

def detect_execution_context() -> ExecutionContext:
    """
    Detect whether we're running in a browser (Pyodide) or on a server.

    Workers also run on Pyodide, but they have no `window` global.
    """
    if sys.platform != "emscripten":
        return ExecutionContext.SERVER
    try:
        import js  # type: ignore[import-not-found]
    except ImportError:
        return ExecutionContext.SERVER
    if getattr(js, "window", None) is not None:
        return ExecutionContext.CLIENT
    return ExecutionContext.SERVER


def _load_sandbox_env() -> Any | None:
    """Import the Workers module and pull its env, or None outside the sandbox."""
    try:
        module = importlib.import_module(EDGE_RUNTIME_MODULE)
    except ImportError:
        logger.debug(f"Edge runtime module '{EDGE_RUNTIME_MODULE}' not importable")
        return None

    import_from_javascript = getattr(module, "import_from_javascript", None)
    if import_from_javascript is not None:
        try:
            return import_from_javascript(EDGE_ENV_SPECIFIER).env
        except (ImportError, AttributeError) as e:
            logger.debug(f"Could not load '{EDGE_ENV_SPECIFIER}': {e}")

    return getattr(module, "env", None)


def detect_runtime() -> RuntimeProvider:
    """
    Detect the hosting runtime.

    Not being in the sandbox is the normal case for local development,
    so every failure here quietly yields NoEdgeRuntime.
    """
    execution_context = detect_execution_context()
    env = _load_sandbox_env()
    if env is not None:
        return EdgeSandbox(env, execution_context=execution_context)
    return NoEdgeRuntime(execution_context=execution_context)


# =============================================================================
# Process-wide Provider
# =============================================================================

_provider: RuntimeProvider | None = None


def get_runtime_provider() -> RuntimeProvider:
    """Get the process runtime provider, detecting it on first use."""
    global _provider
    if _provider is None:
        _provider = detect_runtime()
        logger.info(f"Runtime provider selected: {_provider!r}")
    return _provider


def set_runtime_provider(provider: RuntimeProvider) -> None:
    """Inject a runtime provider (startup hooks and tests)."""
    global _provider
    _provider = provider


def reset_runtime_provider() -> None:
    """Forget the current provider so the next access re-detects."""
    global _provider
    _provider = None
