# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - runtime.py: Runtime providers (plain process vs edge sandbox)
# - static_env.py: Frozen build-time environment (public + built-in keys)
# - env.py: Environment variable resolver across all sources
# - database.py: Lazily built process-wide database handle
# - request_context.py: Context of the request currently being served
# - migrations.py: Migration target selection (D1 vs libSQL)
# - utils.py: Shared utilities (error base class, field access)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.env import (
    EnvResolver,
    EnvValueError,
    get_env_var,
    get_env_var_sync,
    get_typed_env_var,
    parse_flag,
    get_managed_database_binding,
    get_all_managed_bindings,
)
from lib.database import (
    DatabaseInitError,
    EnvironmentAccessError,
    get_database_handle,
    get_managed_db,
)
from lib.runtime import EdgeSandbox, ExecutionContext, NoEdgeRuntime
from lib.static_env import SourceUnavailableError
from lib.utils import ApplicationError

__all__ = [
    # Resolver
    "EnvResolver",
    "get_env_var",
    "get_env_var_sync",
    "get_typed_env_var",
    "parse_flag",
    "get_managed_database_binding",
    "get_all_managed_bindings",
    # Database
    "DatabaseInitError",
    "EnvironmentAccessError",
    "get_database_handle",
    "get_managed_db",
    # Runtime
    "EdgeSandbox",
    "ExecutionContext",
    "NoEdgeRuntime",
    # Errors
    "EnvValueError",
    "SourceUnavailableError",
    "ApplicationError",
]
