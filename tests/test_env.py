# =============================================================================
# tests/test_env.py - Environment Resolver Tests
# =============================================================================
# This module contains tests for:
# - Source priority (edge bindings > static environment > process)
# - Each context extraction path on its own
# - The synchronous lookup path
# - Unavailable or broken sources and the empty-value policy
# - Typed lookups with converters
# - Managed binding discovery
# =============================================================================

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from lib.env import (
    CONTEXT_BINDING_PATHS,
    EnvResolver,
    EnvValueError,
    find_context_bindings,
    get_all_managed_bindings,
    get_env_var,
    get_env_var_sync,
    get_typed_env_var,
    get_managed_database_binding,
    parse_flag,
)
from lib.runtime import EdgeSandbox, ExecutionContext, NoEdgeRuntime
from lib.static_env import SourceUnavailableError, reset_static_environment


def unavailable_static_env():
    raise SourceUnavailableError("static environment")


def broken_static_env():
    raise RuntimeError("static environment exploded")


def make_resolver(runtime=None, static_env=None, process_env=None) -> EnvResolver:
    return EnvResolver(
        runtime=runtime or NoEdgeRuntime(),
        static_env=static_env if static_env is not None else {},
        process_env=process_env if process_env is not None else {},
    )


# =============================================================================
# Priority Tests
# =============================================================================

class TestResolutionOrder:
    """Test that sources are consulted in a fixed order."""

    def test_edge_binding_wins_over_static_and_process(self, db_marker):
        """A context binding set beats both other sources."""
        resolver = make_resolver(
            static_env={"API_KEY": "y"},
            process_env={"API_KEY": "z"},
        )
        context = {"env": {"DB": db_marker, "API_KEY": "x"}}

        assert asyncio.run(resolver.get_env_var("API_KEY", context)) == "x"

    def test_runtime_bindings_win_over_static(self, db_marker):
        """Without a context, the runtime provider's bindings come first."""
        resolver = make_resolver(
            runtime=EdgeSandbox({"DB": db_marker, "API_KEY": "edge"}),
            static_env={"API_KEY": "static"},
            process_env={"API_KEY": "process"},
        )

        assert asyncio.run(resolver.get_env_var("API_KEY")) == "edge"

    def test_static_wins_over_process(self):
        """Static environment beats the process environment."""
        resolver = make_resolver(
            static_env={"PUBLIC_API_URL": "https://static.example.com"},
            process_env={"PUBLIC_API_URL": "https://process.example.com"},
        )

        assert asyncio.run(resolver.get_env_var("PUBLIC_API_URL")) == "https://static.example.com"

    def test_falls_back_to_process(self):
        """Context without bindings and unavailable static env -> process env."""
        resolver = make_resolver(
            static_env=unavailable_static_env,
            process_env={"FOO": "bar"},
        )

        assert asyncio.run(resolver.get_env_var("FOO", {})) == "bar"

    def test_binding_set_missing_key_falls_through(self, db_marker):
        """A binding set without the key doesn't stop the search."""
        resolver = make_resolver(process_env={"LIBSQL_URL": "libsql://db"})
        context = {"env": {"DB": db_marker}}

        assert asyncio.run(resolver.get_env_var("LIBSQL_URL", context)) == "libsql://db"


# =============================================================================
# Missing Variable Tests
# =============================================================================

class TestMissingVariables:
    """Test that absent keys resolve to None, never raise."""

    def test_absent_everywhere_async(self, db_marker):
        resolver = make_resolver(runtime=EdgeSandbox({"DB": db_marker}))

        assert asyncio.run(resolver.get_env_var("NOPE", {"env": {}})) is None

    def test_absent_everywhere_sync(self):
        resolver = make_resolver(static_env=unavailable_static_env)

        assert resolver.get_env_var_sync("NOPE", {"platform": None}) is None

    def test_repeated_lookups_agree(self):
        """No caching surprises: same sources, same answer."""
        resolver = make_resolver(process_env={"FOO": "bar"})

        first = asyncio.run(resolver.get_env_var("FOO"))
        second = asyncio.run(resolver.get_env_var("FOO"))

        assert first == second == "bar"

    def test_lookups_see_source_changes(self):
        """Values are re-resolved on every call."""
        process_env = {"FOO": "one"}
        resolver = make_resolver(process_env=process_env)

        assert asyncio.run(resolver.get_env_var("FOO")) == "one"
        process_env["FOO"] = "two"
        assert asyncio.run(resolver.get_env_var("FOO")) == "two"


# =============================================================================
# Broken Static Source Tests
# =============================================================================

class TestBrokenStaticSource:
    """A static source that raises anything counts as absent."""

    def test_async_falls_back_to_process(self):
        resolver = make_resolver(static_env=broken_static_env, process_env={"FOO": "bar"})

        assert asyncio.run(resolver.get_env_var("FOO", {})) == "bar"

    def test_sync_falls_back_to_process(self):
        resolver = make_resolver(static_env=broken_static_env, process_env={"FOO": "bar"})

        assert resolver.get_env_var_sync("FOO") == "bar"

    def test_absent_everywhere_is_none(self):
        resolver = make_resolver(static_env=broken_static_env)

        assert asyncio.run(resolver.get_env_var("NOPE")) is None
        assert resolver.get_env_var_sync("NOPE") is None

    def test_invalid_settings_fall_back_to_process(self, monkeypatch):
        """Settings that fail validation don't break lookups."""
        from app.config import Settings

        monkeypatch.setenv("API_PORT", "notaport")
        monkeypatch.setenv("API_KEY", "from-process")
        monkeypatch.setattr("lib.static_env._settings_loader", Settings)
        reset_static_environment()

        assert get_env_var_sync("API_KEY") == "from-process"
        assert asyncio.run(get_env_var("API_KEY")) == "from-process"


# =============================================================================
# Typed Lookup Tests
# =============================================================================

class TestTypedLookup:
    """Test converting resolved values."""

    def test_int(self):
        resolver = make_resolver(process_env={"PORT": "8080"})

        assert asyncio.run(resolver.get_typed_env_var("PORT", int)) == 8080

    def test_flag(self):
        resolver = make_resolver(process_env={"DEBUG": "true", "VERBOSE": "yes"})

        assert asyncio.run(resolver.get_typed_env_var("DEBUG", parse_flag)) is True
        assert asyncio.run(resolver.get_typed_env_var("VERBOSE", parse_flag)) is False

    def test_json_from_binding_set(self, db_marker):
        resolver = make_resolver()
        context = {"env": {"DB": db_marker, "FEATURES": '["search", "export"]'}}

        features = asyncio.run(resolver.get_typed_env_var("FEATURES", json.loads, context))

        assert features == ["search", "export"]

    def test_static_booleans_convert(self):
        resolver = make_resolver(static_env={"SSR": True})

        assert asyncio.run(resolver.get_typed_env_var("SSR", parse_flag)) is True

    def test_unset_skips_converter(self):
        resolver = make_resolver()

        assert asyncio.run(resolver.get_typed_env_var("PORT", int)) is None

    def test_no_converter_returns_string(self):
        resolver = make_resolver(process_env={"PORT": "8080"})

        assert asyncio.run(resolver.get_typed_env_var("PORT")) == "8080"

    def test_conversion_failure(self):
        resolver = make_resolver(process_env={"PORT": "s3cret"})

        with pytest.raises(EnvValueError) as exc_info:
            asyncio.run(resolver.get_typed_env_var("PORT", int))

        assert exc_info.value.code == "INVALID_ENV_VALUE"
        assert exc_info.value.details == {"name": "PORT"}
        assert "s3cret" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_module_function(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")

        assert asyncio.run(get_typed_env_var("PORT", int)) == 9000


# =============================================================================
# Context Extraction Tests
# =============================================================================

class TestContextExtraction:
    """Test each context path independently."""

    def test_lookup_order(self):
        assert CONTEXT_BINDING_PATHS == (
            ("env",),
            ("cloudflare", "env"),
            ("platform", "env"),
            (),
        )

    @pytest.mark.parametrize(
        "build_context",
        [
            lambda env: {"env": env},
            lambda env: {"cloudflare": {"env": env}},
            lambda env: {"platform": {"env": env}},
            lambda env: env,
        ],
        ids=["env", "cloudflare.env", "platform.env", "direct"],
    )
    def test_each_path_finds_bindings(self, build_context, db_marker):
        env = {"DB": db_marker, "API_KEY": "x"}

        assert find_context_bindings(build_context(env)) is env

    def test_attribute_style_context(self, db_marker):
        """Objects like request.state work the same as dicts."""
        env = SimpleNamespace(DB=db_marker, API_KEY="x")
        context = SimpleNamespace(cloudflare=SimpleNamespace(env=env))

        assert find_context_bindings(context) is env

    def test_marker_required(self):
        """An env without DB isn't treated as the binding set."""
        assert find_context_bindings({"env": {"API_KEY": "x"}}) is None

    def test_first_matching_path_wins(self, db_marker):
        first = {"DB": db_marker, "NAME": "first"}
        second = {"DB": db_marker, "NAME": "second"}
        context = {"env": first, "platform": {"env": second}}

        assert find_context_bindings(context) is first

    def test_no_context(self):
        assert find_context_bindings(None) is None


# =============================================================================
# Synchronous Path Tests
# =============================================================================

class TestSyncLookup:
    """Test get_env_var_sync."""

    @pytest.mark.parametrize(
        "context",
        [
            {"env": {"API_KEY": "x"}},
            {"cloudflare": {"env": {"API_KEY": "x"}}},
            {"platform": {"env": {"API_KEY": "x"}}},
            {"API_KEY": "x"},
        ],
        ids=["env", "cloudflare.env", "platform.env", "direct"],
    )
    def test_reads_context_paths_without_marker(self, context):
        resolver = make_resolver(process_env={"API_KEY": "z"})

        assert resolver.get_env_var_sync("API_KEY", context) == "x"

    def test_ignores_runtime_provider(self, db_marker):
        """The sync path can't reach the sandbox's bindings."""
        resolver = make_resolver(
            runtime=EdgeSandbox({"DB": db_marker, "API_KEY": "edge"}),
            process_env={"API_KEY": "process"},
        )

        assert resolver.get_env_var_sync("API_KEY") == "process"

    def test_static_builtins_stringified(self, static_values):
        resolver = make_resolver(static_env=static_values)

        assert resolver.get_env_var_sync("DEV") == "false"
        assert resolver.get_env_var_sync("SSR") == "true"
        assert resolver.get_env_var_sync("MODE") == "test"


# =============================================================================
# Empty Value Policy Tests
# =============================================================================

class TestEmptyValuePolicy:
    """
    Empty strings in bindings and the process env count as unset.
    Static values count whenever they are not None.
    """

    def test_empty_binding_value_falls_through(self, db_marker):
        resolver = make_resolver(static_env={"API_KEY": "static"})
        context = {"env": {"DB": db_marker, "API_KEY": ""}}

        assert asyncio.run(resolver.get_env_var("API_KEY", context)) == "static"

    def test_empty_process_value_is_absent(self):
        resolver = make_resolver(process_env={"API_KEY": ""})

        assert asyncio.run(resolver.get_env_var("API_KEY")) is None

    def test_empty_static_value_is_present(self):
        resolver = make_resolver(
            static_env={"PUBLIC_FLAG": ""},
            process_env={"PUBLIC_FLAG": "process"},
        )

        assert asyncio.run(resolver.get_env_var("PUBLIC_FLAG")) == ""

    def test_none_static_value_is_absent(self):
        resolver = make_resolver(
            static_env={"PUBLIC_FLAG": None},
            process_env={"PUBLIC_FLAG": "process"},
        )

        assert asyncio.run(resolver.get_env_var("PUBLIC_FLAG")) == "process"


# =============================================================================
# Client Execution Context Tests
# =============================================================================

class TestClientContext:
    """Test lookups from client-side code."""

    def test_process_env_not_visible_on_client(self):
        resolver = make_resolver(
            runtime=NoEdgeRuntime(execution_context=ExecutionContext.CLIENT),
            process_env={"API_SECRET_KEY": "secret"},
        )

        assert asyncio.run(resolver.get_env_var("API_SECRET_KEY")) is None
        assert resolver.get_env_var_sync("API_SECRET_KEY") is None

    def test_static_env_visible_on_client(self):
        resolver = make_resolver(
            runtime=NoEdgeRuntime(execution_context=ExecutionContext.CLIENT),
            static_env={"PUBLIC_API_URL": "https://api.example.com"},
        )

        assert resolver.get_env_var_sync("PUBLIC_API_URL") == "https://api.example.com"


# =============================================================================
# Managed Binding Tests
# =============================================================================

class TestManagedBindings:
    """Test managed binding discovery."""

    def test_database_binding_from_context(self, db_marker):
        resolver = make_resolver()
        context = {"platform": {"env": {"DB": db_marker}}}

        assert asyncio.run(resolver.get_managed_database_binding(context)) is db_marker

    def test_database_binding_from_runtime(self, db_marker):
        resolver = make_resolver(runtime=EdgeSandbox({"DB": db_marker}))

        assert asyncio.run(resolver.get_managed_database_binding()) is db_marker

    def test_no_context_no_sandbox(self):
        resolver = make_resolver()

        assert asyncio.run(resolver.get_managed_database_binding()) is None
        assert asyncio.run(resolver.get_all_managed_bindings()) is None

    def test_all_bindings(self, db_marker):
        env = {"DB": db_marker, "BUCKET": object()}
        resolver = make_resolver()

        assert asyncio.run(resolver.get_all_managed_bindings({"env": env})) is env


# =============================================================================
# Module-level API Tests
# =============================================================================

class TestModuleFunctions:
    """Test the default resolver wired to the process-wide sources."""

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "from-process")

        assert asyncio.run(get_env_var("API_KEY")) == "from-process"
        assert get_env_var_sync("API_KEY") == "from-process"

    def test_reads_injected_static_environment(self):
        assert get_env_var_sync("MODE") == "test"

    def test_binding_helpers(self, db_marker):
        context = {"env": {"DB": db_marker}}

        assert asyncio.run(get_managed_database_binding(context)) is db_marker
        assert asyncio.run(get_all_managed_bindings(context)) == {"DB": db_marker}
