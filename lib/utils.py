# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

from collections.abc import Mapping
from typing import Any


# =============================================================================
# Field Access Utilities
# =============================================================================

def get_field(obj: Any, key: str) -> Any:
    """
    Read a field from a mapping or an attribute-style object.

    Context objects arrive in many shapes (ASGI scope dicts, request.state,
    JS proxies from the Workers runtime), so this tries item access first
    and falls back to attributes.

    Args:
        obj: Mapping or object to read from
        key: Field name

    Returns:
        The field value, or None if the object doesn't carry it

    Example:
        get_field({"env": env}, "env")      # env
        get_field(request.state, "env")     # request.state.env or None
    """
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def get_path(obj: Any, path: tuple[str, ...]) -> Any:
    """
    Walk a tuple of field names, returning None as soon as a step is missing.

    An empty path returns the object itself.
    """
    current = obj
    for key in path:
        current = get_field(current, key)
        if current is None:
            return None
    return current


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for application-specific errors.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging

    Example:
        class MyServiceError(ApplicationError):
            def __init__(self, message: str, **kwargs):
                super().__init__(message, code="MY_SERVICE_ERROR", **kwargs)
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }
