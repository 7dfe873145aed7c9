# =============================================================================
# lib/static_env.py - Build-time Static Environment
# =============================================================================
# A frozen map that is identical for every caller in the process, built once
# from:
# 1. Public-prefixed keys in the .env file (PUBLIC_API_URL=...)
# 2. Public-prefixed keys in the process environment (override the file)
# 3. Built-in keys: MODE, DEV, PROD, BASE_URL, SSR
#
# Only public-prefixed keys are copied because this map is safe to ship to
# client builds. Server secrets stay in the process environment.
#
# Usage:
#   from lib.static_env import get_static_environment
#   mode = get_static_environment()["MODE"]
# =============================================================================

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from dotenv import dotenv_values

from lib.runtime import ExecutionContext, get_runtime_provider
from lib.utils import ApplicationError

# Set up logging for this module
logger = logging.getLogger(__name__)

BUILTIN_KEYS = ("MODE", "DEV", "PROD", "BASE_URL", "SSR")


class SourceUnavailableError(ApplicationError):
    """Raised when a configuration source can't be read in this runtime."""

    def __init__(self, source: str):
        super().__init__(
            message=f"Configuration source unavailable: {source}",
            code="SOURCE_UNAVAILABLE",
            suggestion="This source is optional; callers fall back to the next one",
            details={"source": source},
        )


def stringify_env_value(value: Any) -> str:
    """Render a static value the way a bundler would (True -> "true")."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_static_environment(
    settings: Any,
    execution_context: ExecutionContext = ExecutionContext.SERVER,
    process_env: Mapping[str, str] | None = None,
) -> Mapping[str, Any]:
    """
    Build the frozen static environment.

    Args:
        settings: Settings instance (MODE, BASE_URL, PUBLIC_ENV_PREFIX, ENV_FILE)
        execution_context: Side being built for; drives the SSR flag
        process_env: Process environment to copy public keys from

    Returns:
        Read-only mapping of key -> value
    """
    prefix = settings.PUBLIC_ENV_PREFIX
    process_env = os.environ if process_env is None else process_env

    values: dict[str, Any] = {}

    if settings.ENV_FILE and os.path.exists(settings.ENV_FILE):
        for key, value in dotenv_values(settings.ENV_FILE).items():
            if key.startswith(prefix) and value is not None:
                values[key] = value

    for key, value in process_env.items():
        if key.startswith(prefix):
            values[key] = value

    values.update({
        "MODE": settings.MODE,
        "DEV": settings.MODE == "development",
        "PROD": settings.MODE == "production",
        "BASE_URL": settings.BASE_URL,
        "SSR": execution_context is ExecutionContext.SERVER,
    })

    public_count = len(values) - len(BUILTIN_KEYS)
    logger.debug(f"Static environment built: mode={settings.MODE}, {public_count} public keys")
    return MappingProxyType(values)


# =============================================================================
# Process-wide Static Environment
# =============================================================================

@dataclass(frozen=True)
class StaticEnvSettings:
    """The four settings the static environment is built from."""

    MODE: str = "development"
    BASE_URL: str = "/"
    PUBLIC_ENV_PREFIX: str = "PUBLIC_"
    ENV_FILE: str = ".env"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "StaticEnvSettings":
        """Read the settings straight from the process environment."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[name]
            for name in ("MODE", "BASE_URL", "PUBLIC_ENV_PREFIX", "ENV_FILE")
            if environ.get(name)
        }
        return cls(**values)


SettingsLoader = Callable[[], Any]

# Sentinel distinguishing "not built yet" from "explicitly unavailable"
_UNSET: Any = object()

_static_env: Mapping[str, Any] | None = _UNSET

# The application registers its validated settings here (app/config.py)
_settings_loader: SettingsLoader = StaticEnvSettings.from_environ


def set_settings_loader(loader: SettingsLoader) -> None:
    """
    Choose where build settings come from and drop the cached map.

    Args:
        loader: Zero-argument callable returning an object with MODE,
            BASE_URL, PUBLIC_ENV_PREFIX and ENV_FILE attributes
    """
    global _settings_loader
    _settings_loader = loader
    reset_static_environment()


def get_static_environment() -> Mapping[str, Any]:
    """
    Get the static environment, building it on first access.

    A loader that raises leaves the map unbuilt, so the next access retries.

    Raises:
        SourceUnavailableError: If the source was marked unavailable
    """
    global _static_env
    if _static_env is _UNSET:
        settings = _settings_loader()
        provider = get_runtime_provider()
        _static_env = build_static_environment(settings, provider.execution_context)
    if _static_env is None:
        raise SourceUnavailableError("static environment")
    return _static_env


def set_static_environment(values: Mapping[str, Any] | None) -> None:
    """
    Inject the static environment.

    Pass None to mark it unavailable for this runtime.
    """
    global _static_env
    _static_env = None if values is None else MappingProxyType(dict(values))


def reset_static_environment() -> None:
    """Drop the cached map so the next access rebuilds it."""
    global _static_env
    _static_env = _UNSET
