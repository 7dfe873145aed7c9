# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Edge Starter API:
# - test_env.py: Environment resolver priority, context paths, sync path
# - test_runtime.py: Runtime provider detection and injection
# - test_static_env.py: Static environment building
# - test_database.py: Database handle selection, singleton, failures
# - test_migrations.py: Migration target selection
# - test_api.py: API endpoint tests
#
# Run tests with: pytest
# =============================================================================
