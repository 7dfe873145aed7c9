# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Library errors (lib.utils.ApplicationError) carry a code and a suggestion;
# API-layer errors (EdgeStarterException) also carry their HTTP status;
# here they become structured JSON responses.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from lib.utils import ApplicationError


class EdgeStarterException(Exception):
    """
    Base exception for errors raised by the API layer itself.

    Library failures arrive as ApplicationError; these are for conditions
    only a route can decide on (feature gates, request-level checks).
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "EDGE_STARTER_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Feature Exceptions
# =============================================================================

class FeatureDisabledError(EdgeStarterException):
    """Raised when a route sits behind a feature flag that is off."""

    def __init__(self, flag: str):
        super().__init__(
            message=f"Feature is disabled: {flag}",
            code="FEATURE_DISABLED",
            status_code=404,
            suggestion=f"Set {flag}=true in the binding set or environment to enable it",
            details={"flag": flag}
        )


# Error codes that map to something other than 500
ERROR_STATUS_CODES = {
    "DATABASE_INIT_FAILED": 503,
}


def error_response_body(exc: ApplicationError) -> dict[str, Any]:
    """Convert an ApplicationError to the API error shape."""
    result: dict[str, Any] = {
        "detail": exc.message,
        "code": exc.code,
    }
    if exc.suggestion:
        result["suggestion"] = exc.suggestion
    if exc.details:
        result["details"] = exc.details
    return result


# =============================================================================
# Exception Handlers
# =============================================================================

async def application_error_handler(
    request: Request,
    exc: ApplicationError
) -> JSONResponse:
    """
    Convert ApplicationError to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.code, 500),
        content=error_response_body(exc)
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": str(exc)
        }
    )


async def edge_starter_exception_handler(
    request: Request,
    exc: EdgeStarterException
) -> JSONResponse:
    """Convert EdgeStarterException to JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
