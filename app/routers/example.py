# =============================================================================
# app/routers/example.py - Example Endpoints
# =============================================================================
# Starting points for your own server endpoints, showing how handlers read
# configuration through the env resolver with the request context.
# =============================================================================

import json
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.dependencies import DatabaseDep, EnvContextDep
from app.exceptions import FeatureDisabledError
from lib.env import get_env_var, get_typed_env_var, parse_flag

router = APIRouter()

DEFAULT_API_URL = "http://localhost:3000"

# Server-only flag gating /example/experimental
EXPERIMENTAL_API_FLAG = "FEATURE_EXPERIMENTAL_API"


# =============================================================================
# Request/Response Models
# =============================================================================

class ExampleMessage(BaseModel):
    """Payload for POST /example."""
    message: str = Field(..., min_length=1, max_length=2000)


class ExampleResponse(BaseModel):
    message: str
    timestamp: str
    data: dict[str, Any] | None = None


class DatabaseInfoResponse(BaseModel):
    kind: str


class ApiConfigResponse(BaseModel):
    """Public API config. Never echoes secrets, only whether they're set."""
    api_url: str
    has_api_key: bool


class TypedConfigResponse(BaseModel):
    """Config values converted from their string form."""
    port: int | None = None
    debug: bool = False
    features: Any = None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/example", response_model=ExampleResponse)
async def get_example_data():
    return ExampleResponse(
        message="Hello from API!",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.post("/example", response_model=ExampleResponse)
async def post_example_data(payload: ExampleMessage):
    """Echo the payload back. Validate and process your data here."""
    return ExampleResponse(
        message="Data received!",
        data=payload.model_dump(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/example/config", response_model=ApiConfigResponse)
async def get_api_config(context: EnvContextDep):
    """
    Read config through the resolver.

    PUBLIC_API_URL is safe to expose; API_SECRET_KEY is only reported
    as present or not.
    """
    api_url = await get_env_var("PUBLIC_API_URL", context)
    api_key = await get_env_var("API_SECRET_KEY", context)

    return ApiConfigResponse(
        api_url=api_url or DEFAULT_API_URL,
        has_api_key=bool(api_key),
    )


@router.get("/example/db", response_model=DatabaseInfoResponse)
async def get_database_info(db: DatabaseDep):
    """Report which database backend this process is using."""
    return DatabaseInfoResponse(kind=db.kind)


@router.get("/example/typed-config", response_model=TypedConfigResponse)
async def get_typed_config(context: EnvContextDep):
    """
    Read numeric, boolean and JSON config through the resolver.

    A value that doesn't convert is a deployment mistake and comes back as
    INVALID_ENV_VALUE rather than a silent default.
    """
    port = await get_typed_env_var("PORT", int, context)
    debug = await get_typed_env_var("DEBUG", parse_flag, context)
    features = await get_typed_env_var("FEATURES", json.loads, context)

    return TypedConfigResponse(port=port, debug=bool(debug), features=features)


@router.get("/example/experimental", response_model=ExampleResponse)
async def get_experimental(context: EnvContextDep):
    """Only served when FEATURE_EXPERIMENTAL_API is "true"."""
    enabled = await get_typed_env_var(EXPERIMENTAL_API_FLAG, parse_flag, context)
    if not enabled:
        raise FeatureDisabledError(EXPERIMENTAL_API_FLAG)

    return ExampleResponse(
        message="Experimental API enabled",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
