# =============================================================================
# lib/env.py - Unified Environment Variable Resolver
# =============================================================================
# Looks up configuration values and the managed database binding across
# runtimes that don't agree on where configuration lives:
# - Edge sandbox (Cloudflare Python Workers): binding set on the request
#   context or exposed by the runtime module
# - Static environment: frozen public/built-in keys (lib/static_env.py)
# - Process environment: os.environ (server side only)
#
# Resolution order is fixed: edge bindings > static environment > process.
# A key missing everywhere resolves to None; that is never an error.
#
# Usage:
#   from lib.env import get_env_var, get_env_var_sync
#
#   # In a request handler (context = request.scope)
#   api_key = await get_env_var("API_KEY", request.scope)
#
#   # In module-level config that can't await
#   api_url = get_env_var_sync("PUBLIC_API_URL") or "http://localhost:3000"
#
#   # Converted, with None for unset
#   port = await get_typed_env_var("PORT", int, request.scope)
# =============================================================================

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from lib.runtime import RuntimeProvider, get_runtime_provider
from lib.static_env import (
    SourceUnavailableError,
    get_static_environment,
    stringify_env_value,
)
from lib.utils import ApplicationError, get_field, get_path

# Set up logging for this module
logger = logging.getLogger(__name__)

# Field whose presence marks an object as the edge binding set
DATABASE_BINDING_KEY = "DB"

# Where hosting frameworks attach the binding set, in lookup order:
#   context.env             - ASGI scope from the Workers adapter
#   context.cloudflare.env  - adapters that namespace by provider
#   context.platform.env    - adapters that namespace by platform
#   context                 - the binding set itself was passed in
CONTEXT_BINDING_PATHS: tuple[tuple[str, ...], ...] = (
    ("env",),
    ("cloudflare", "env"),
    ("platform", "env"),
    (),
)

StaticEnvSource = Mapping[str, Any] | Callable[[], Mapping[str, Any]]

T = TypeVar("T")


class EnvValueError(ApplicationError):
    """Raised when a variable is set but can't be converted to the wanted type."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Invalid value for {name}: {reason}",
            code="INVALID_ENV_VALUE",
            suggestion=f"Check how {name} is set in the binding set, .env or the process environment",
            details={"name": name},
        )


def parse_flag(value: str) -> bool:
    """Feature-flag converter: only the string "true" is on."""
    return value == "true"


def find_context_bindings(context: Any) -> Any | None:
    """
    Find the binding set attached to a request context.

    Applies CONTEXT_BINDING_PATHS in order and returns the first object
    carrying a truthy DB field.

    Args:
        context: Request context (ASGI scope, request.state, dict, ...)

    Returns:
        The binding set, or None if no path matched
    """
    if context is None:
        return None
    for path in CONTEXT_BINDING_PATHS:
        candidate = get_path(context, path)
        if candidate is not None and get_field(candidate, DATABASE_BINDING_KEY):
            return candidate
    return None


class EnvResolver:
    """
    Resolves configuration values across the three sources.

    Every source is injectable so tests (and unusual hosts) can supply
    their own; None means "use the process-wide default".

    Example:
        resolver = EnvResolver(
            runtime=EdgeSandbox({"DB": d1, "API_KEY": "x"}),
            static_env={"MODE": "test"},
            process_env={},
        )
        await resolver.get_env_var("API_KEY")  # "x"
    """

    def __init__(
        self,
        runtime: RuntimeProvider | None = None,
        static_env: StaticEnvSource | None = None,
        process_env: Mapping[str, str] | None = None,
    ):
        self._runtime = runtime
        self._static_env = static_env
        self._process_env = process_env

    @property
    def runtime(self) -> RuntimeProvider:
        return self._runtime if self._runtime is not None else get_runtime_provider()

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def _discover_bindings(self, context: Any) -> Any | None:
        """Context first, then whatever the runtime provider exposes."""
        bindings = find_context_bindings(context)
        if bindings is not None:
            return bindings
        return self.runtime.edge_bindings()

    def _read_static(self) -> Mapping[str, Any] | None:
        source = self._static_env
        if source is None:
            source = get_static_environment
        if isinstance(source, Mapping):
            return source
        try:
            return source()
        except SourceUnavailableError:
            logger.debug("Static environment unavailable in this runtime")
            return None
        except Exception as e:
            # A broken source counts as absent; lookups never raise for it
            logger.debug(f"Static environment could not be read: {e!r}")
            return None

    def _read_process(self, name: str) -> str | None:
        # The process environment only exists on the server
        if self.runtime.is_client:
            return None
        process_env = os.environ if self._process_env is None else self._process_env
        value = process_env.get(name)
        return value if value else None

    def _read_static_value(self, name: str) -> str | None:
        static_env = self._read_static()
        if static_env is None:
            return None
        value = static_env.get(name)
        if value is None:
            return None
        return stringify_env_value(value)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def get_env_var(self, name: str, context: Any = None) -> str | None:
        """
        Resolve an environment variable.

        Order:
        1. Edge binding set (request context, then runtime provider)
        2. Static environment
        3. Process environment

        Args:
            name: Variable name
            context: Optional request context (ASGI scope, dict, object)

        Returns:
            The value, or None if no source has it
        """
        bindings = self._discover_bindings(context)
        if bindings is not None:
            value = get_field(bindings, name)
            if value:
                return value

        value = self._read_static_value(name)
        if value is not None:
            return value

        return self._read_process(name)

    def get_env_var_sync(self, name: str, context: Any = None) -> str | None:
        """
        Synchronous lookup for code that can't await (module-level config).

        Reads the named key straight off each context path without requiring
        the DB marker, and never asks the runtime provider.
        """
        if context is not None:
            for path in CONTEXT_BINDING_PATHS:
                value = get_field(get_path(context, path), name)
                if value:
                    return value

        value = self._read_static_value(name)
        if value is not None:
            return value

        return self._read_process(name)

    async def get_typed_env_var(
        self,
        name: str,
        converter: Callable[[str], T] | None = None,
        context: Any = None,
    ) -> T | str | None:
        """
        Resolve a variable and convert it.

        Example:
            port = await resolver.get_typed_env_var("PORT", int, request.scope)
            debug = await resolver.get_typed_env_var("DEBUG", parse_flag)
            features = await resolver.get_typed_env_var("FEATURES", json.loads)

        Returns:
            The converted value, the raw string if no converter was given,
            or None if the variable is unset (the converter isn't called)

        Raises:
            EnvValueError: If the converter rejects the value
        """
        value = await self.get_env_var(name, context)
        if value is None or converter is None:
            return value
        try:
            return converter(value)
        except (TypeError, ValueError) as e:
            # Don't echo the value; it may be a secret
            raise EnvValueError(name, type(e).__name__) from e

    async def get_managed_database_binding(self, context: Any = None) -> Any | None:
        """Return the managed database binding (DB), or None."""
        bindings = self._discover_bindings(context)
        if bindings is None:
            return None
        return get_field(bindings, DATABASE_BINDING_KEY)

    async def get_all_managed_bindings(self, context: Any = None) -> Any | None:
        """Return the full binding set (DB, KV, R2, ...), or None."""
        return self._discover_bindings(context)


# =============================================================================
# Module-level API
# =============================================================================

_default_resolver = EnvResolver()


def get_resolver() -> EnvResolver:
    """Get the process-wide resolver backed by the default sources."""
    return _default_resolver


async def get_env_var(name: str, context: Any = None) -> str | None:
    """Resolve `name` using the default resolver. See EnvResolver.get_env_var."""
    return await _default_resolver.get_env_var(name, context)


def get_env_var_sync(name: str, context: Any = None) -> str | None:
    """Resolve `name` without awaiting. See EnvResolver.get_env_var_sync."""
    return _default_resolver.get_env_var_sync(name, context)


async def get_typed_env_var(
    name: str,
    converter: Callable[[str], T] | None = None,
    context: Any = None,
) -> T | str | None:
    """Resolve and convert `name`. See EnvResolver.get_typed_env_var."""
    return await _default_resolver.get_typed_env_var(name, converter, context)


async def get_managed_database_binding(context: Any = None) -> Any | None:
    return await _default_resolver.get_managed_database_binding(context)


async def get_all_managed_bindings(context: Any = None) -> Any | None:
    return await _default_resolver.get_all_managed_bindings(context)
