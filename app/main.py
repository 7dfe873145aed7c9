# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Edge Starter API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    EdgeStarterException,
    application_error_handler,
    edge_starter_exception_handler,
    validation_exception_handler,
)
from app.routers import example, health
from lib.request_context import reset_request_context, set_request_context
from lib.runtime import get_runtime_provider
from lib.utils import ApplicationError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: select the runtime provider once, so requests never re-detect
    the sandbox themselves. The database handle is built lazily by the
    first request that needs it and lives until the process exits.
    """
    provider = get_runtime_provider()
    logger.info(f"Starting Edge Starter API in {settings.MODE} mode")
    logger.info(f"Runtime: {provider.name} ({provider.execution_context.value})")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    logger.info("Shutting down Edge Starter API")


# Create FastAPI application
app = FastAPI(
    title="Edge Starter API",
    description="""
## Edge Starter

A server starter that runs unchanged on a plain Python host and inside a
Cloudflare Python Worker.

- **Configuration** is read through one resolver: edge bindings, then the
  static environment, then the process environment.
- **Database** is the Worker's D1 binding when present, otherwise libSQL
  (`LIBSQL_URL`, default `file:./db/app.db`).
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Example",
            "description": "Example endpoints to start from",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Expose the ASGI scope as the current request context for the resolver."""
    token = set_request_context(request.scope)
    try:
        return await call_next(request)
    finally:
        reset_request_context(token)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(EdgeStarterException, edge_starter_exception_handler)
app.add_exception_handler(ApplicationError, application_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Example endpoints
app.include_router(
    example.router,
    prefix="/api/v1",
    tags=["Example"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Edge Starter API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
