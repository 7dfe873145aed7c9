# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# =============================================================================

from typing import Annotated, Any

from fastapi import Depends, Request

from lib.database import DatabaseHandle, get_database_handle


def get_request_env_context(request: Request) -> Any:
    """
    Get the context object the env resolver should search.

    This is the ASGI scope: the Workers ASGI adapter attaches the binding
    set to it as scope["env"].
    """
    return request.scope


async def get_database(
    context: Annotated[Any, Depends(get_request_env_context)],
) -> DatabaseHandle:
    """
    Get the process-wide database handle.

    The first request builds it; later requests reuse it.
    """
    return await get_database_handle(context)


# Type aliases for dependency injection
EnvContextDep = Annotated[Any, Depends(get_request_env_context)]
DatabaseDep = Annotated[DatabaseHandle, Depends(get_database)]
