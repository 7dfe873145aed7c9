# =============================================================================
# lib/request_context.py - Current Request Context
# =============================================================================
# Holds the context of the request being served (the ASGI scope), so code
# deep in the call stack - like the database handle - can find the edge
# binding set without every caller threading it through.
#
# The HTTP middleware in app/main.py sets it for the duration of a request.
# =============================================================================

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import Any

_request_context: ContextVar[Any | None] = ContextVar("request_context", default=None)


def set_request_context(context: Any) -> Token:
    """Bind `context` to the current task. Returns a token for reset."""
    return _request_context.set(context)


def get_request_context() -> Any | None:
    """Return the current request context, or None outside a request."""
    return _request_context.get()


def reset_request_context(token: Token) -> None:
    _request_context.reset(token)
