# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints (including database readiness)
# - example.py: Example endpoints reading config through the env resolver
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import example

__all__ = [
    "health",
    "example",
]
