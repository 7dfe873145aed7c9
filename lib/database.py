# =============================================================================
# lib/database.py - Database Handle
# =============================================================================
# Provides one database handle per process, picked by environment:
# - Managed edge database: when the binding set carries a DB binding (D1)
# - libSQL: otherwise, built from LIBSQL_URL / LIBSQL_AUTH_TOKEN
#   (defaults to a local file at ./db/app.db)
#
# The handle is built lazily on first use and cached for the rest of the
# process. Concurrent first callers all await the same construction task,
# so the handle is never built twice. A failed construction is not cached;
# the next call tries again.
#
# Usage:
#   from lib.database import get_database_handle
#   db = await get_database_handle(request.scope)
#   rows = await db.execute("SELECT * FROM users WHERE id = ?", [user_id])
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import libsql_client

from lib.env import EnvResolver, get_resolver
from lib.request_context import get_request_context
from lib.runtime import RuntimeProvider
from lib.utils import ApplicationError, get_field

# Set up logging for this module
logger = logging.getLogger(__name__)

DEFAULT_LIBSQL_URL = "file:./db/app.db"

ClientFactory = Callable[..., Any]


# =============================================================================
# Errors
# =============================================================================

class EnvironmentAccessError(ApplicationError):
    """Raised when server-only state is requested from client-side code."""

    def __init__(self, resource: str = "database"):
        super().__init__(
            message=f"Access to {resource} is server-only",
            code="SERVER_ONLY",
            suggestion="Move this call into a server route or server-side dependency",
            details={"resource": resource},
        )


class DatabaseInitError(ApplicationError):
    """Raised when the database handle can't be constructed."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(
            message=f"Failed to initialize database: {message}",
            code="DATABASE_INIT_FAILED",
            suggestion="Check LIBSQL_URL and LIBSQL_AUTH_TOKEN, or the DB binding in your Worker config",
            details={"url": url} if url else None,
        )


def ensure_server(runtime: RuntimeProvider, resource: str = "database") -> None:
    """Raise EnvironmentAccessError when running client-side."""
    if runtime.is_client:
        raise EnvironmentAccessError(resource)


# =============================================================================
# Handles
# =============================================================================

class ManagedDatabase:
    """
    Handle backed by the edge runtime's managed database binding (D1).

    The binding is a JS object under Pyodide; rows come back as JS proxies
    and are converted with to_py() when available.
    """

    kind = "managed"

    def __init__(self, binding: Any):
        self.binding = binding

    async def execute(self, sql: str, args: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        statement = self.binding.prepare(sql)
        if args:
            statement = statement.bind(*args)
        result = await statement.all()
        rows = get_field(result, "results") or []
        to_py = getattr(rows, "to_py", None)
        return list(to_py() if to_py is not None else rows)


class LibsqlDatabase:
    """Handle backed by a libSQL client (local file or remote server)."""

    kind = "libsql"

    def __init__(self, client: Any, url: str):
        self.client = client
        self.url = url

    async def execute(self, sql: str, args: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        result_set = await self.client.execute(sql, list(args) if args else None)
        columns = list(result_set.columns)
        return [dict(zip(columns, row)) for row in result_set.rows]


DatabaseHandle = ManagedDatabase | LibsqlDatabase


def _ensure_local_directory(url: str) -> None:
    """Create the parent directory for file: URLs so SQLite can create the file."""
    parsed = urlparse(url)
    if parsed.scheme != "file" or not parsed.path or parsed.path == ":memory:":
        return
    Path(parsed.path).parent.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Handle Cell
# =============================================================================

class HandleState(str, Enum):
    """Lifecycle of the process-wide handle."""
    UNINITIALIZED = "uninitialized"
    CONSTRUCTING = "constructing"
    READY = "ready"
    FAILED = "failed"


class DatabaseHandleCell:
    """
    Process-wide holder for the database handle.

    The in-flight construction task is the single source of truth for
    callers arriving mid-construction: it is assigned before the first
    await, so late arrivals await that task instead of starting another.

    Example:
        cell = DatabaseHandleCell()
        db = await cell.get(request.scope)
        cell.state  # HandleState.READY
    """

    def __init__(
        self,
        resolver: EnvResolver | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self._resolver = resolver
        self._client_factory = client_factory
        self._handle: DatabaseHandle | None = None
        self._pending: asyncio.Task | None = None
        self._state = HandleState.UNINITIALIZED

    @property
    def resolver(self) -> EnvResolver:
        return self._resolver if self._resolver is not None else get_resolver()

    @property
    def state(self) -> HandleState:
        return self._state

    async def get(self, context: Any = None) -> DatabaseHandle:
        """
        Get the database handle, constructing it on first use.

        Args:
            context: Request context used to find the edge binding set.
                Defaults to the request currently being served.

        Returns:
            ManagedDatabase or LibsqlDatabase

        Raises:
            EnvironmentAccessError: If called from client-side code
            DatabaseInitError: If construction fails
        """
        ensure_server(self.resolver.runtime)

        if self._handle is not None:
            return self._handle

        pending = self._pending
        if pending is not None and (
            pending.done() or pending.get_loop() is not asyncio.get_running_loop()
        ):
            # Left behind by a cancelled construction or a closed event loop
            logger.warning("Discarding stale database construction, retrying")
            self._pending = None
            self._state = HandleState.FAILED
            pending = None

        if pending is None:
            if context is None:
                context = get_request_context()
            logger.info("Database connection initializing...")
            self._state = HandleState.CONSTRUCTING
            pending = asyncio.ensure_future(self._construct(context))
            self._pending = pending

        # Shield so one cancelled caller doesn't abort construction for the rest
        return await asyncio.shield(pending)

    def reset(self) -> None:
        """
        Drop the cached handle. Used by tests and after config changes.

        A construction still in flight is detached: its waiters get its
        result, but the handle is not cached.
        """
        self._handle = None
        self._pending = None
        self._state = HandleState.UNINITIALIZED

    def _owns(self, task: asyncio.Task | None) -> bool:
        return task is not None and self._pending is task

    async def _construct(self, context: Any) -> DatabaseHandle:
        task = asyncio.current_task()
        try:
            handle = await self._build(context)
        except asyncio.CancelledError:
            if self._owns(task):
                self._state = HandleState.FAILED
                self._pending = None
            logger.warning("Database initialization cancelled")
            raise
        except Exception as e:
            if self._owns(task):
                self._state = HandleState.FAILED
                self._pending = None
            logger.error(f"Database initialization failed: {e}")
            if isinstance(e, ApplicationError):
                raise
            raise DatabaseInitError(str(e)) from e

        if not self._owns(task):
            logger.info("Database handle built before a reset; not caching it")
            return handle

        self._handle = handle
        self._state = HandleState.READY
        self._pending = None
        return handle

    async def _build(self, context: Any) -> DatabaseHandle:
        resolver = self.resolver

        binding = await resolver.get_managed_database_binding(context)
        if binding:
            logger.info("Using managed edge database (DB binding detected)")
            return ManagedDatabase(binding)

        url = await resolver.get_env_var("LIBSQL_URL", context) or DEFAULT_LIBSQL_URL
        auth_token = await resolver.get_env_var("LIBSQL_AUTH_TOKEN", context)
        logger.info(f"Using libsql database connection ({url})")
        logger.debug(f"Has auth token: {bool(auth_token)}")

        factory = self._client_factory or libsql_client.create_client
        try:
            _ensure_local_directory(url)
            client = factory(url, auth_token=auth_token)
        except Exception as e:
            raise DatabaseInitError(str(e), url=url) from e

        logger.info(f"Initialized libsql client ({url})")
        return LibsqlDatabase(client, url)


# =============================================================================
# Module-level API
# =============================================================================

_cell = DatabaseHandleCell()


def get_database_cell() -> DatabaseHandleCell:
    return _cell


async def get_database_handle(context: Any = None) -> DatabaseHandle:
    """Get the process-wide database handle. See DatabaseHandleCell.get."""
    return await _cell.get(context)


def reset_database_handle() -> None:
    _cell.reset()


async def get_managed_db(binding: Any) -> ManagedDatabase:
    """
    Wrap a managed database binding the caller already has.

    Useful inside Worker entrypoints that receive `env` directly.
    """
    ensure_server(get_resolver().runtime)
    return ManagedDatabase(binding)
