# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any imports
# - Pins the runtime provider and static environment so tests never
#   detect the real host
# - Resets the process-wide database handle between tests
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("MODE", "test")
os.environ.setdefault("DEBUG", "false")

import pytest

from lib.database import reset_database_handle
from lib.runtime import NoEdgeRuntime, reset_runtime_provider, set_runtime_provider
from lib.static_env import reset_static_environment, set_static_environment

# Variables individual tests set; cleared so the host environment can't leak in
RUNTIME_KEYS = (
    "LIBSQL_URL",
    "LIBSQL_AUTH_TOKEN",
    "API_KEY",
    "API_SECRET_KEY",
    "PUBLIC_API_URL",
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_DATABASE_ID",
    "CLOUDFLARE_API_TOKEN",
    "MIGRATION_SCHEMA_PATH",
    "PORT",
    "FEATURES",
    "FEATURE_EXPERIMENTAL_API",
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def static_values():
    """Static environment as a plain server build in test mode would see it."""
    return {
        "MODE": "test",
        "DEV": False,
        "PROD": False,
        "BASE_URL": "/",
        "SSR": True,
    }


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, static_values):
    """Give every test a plain server runtime and a fresh database handle."""
    for key in RUNTIME_KEYS:
        monkeypatch.delenv(key, raising=False)

    set_runtime_provider(NoEdgeRuntime())
    set_static_environment(static_values)
    reset_database_handle()

    yield

    reset_database_handle()
    reset_static_environment()
    reset_runtime_provider()


@pytest.fixture
def db_marker():
    """Stand-in for a D1 binding object."""
    return object()
