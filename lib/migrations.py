# =============================================================================
# lib/migrations.py - Migration Target Selection
# =============================================================================
# Decides where schema migrations should be applied:
# - Cloudflare D1 over HTTP, when CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_DATABASE_ID
#   and CLOUDFLARE_API_TOKEN are all set
# - libSQL otherwise (LIBSQL_URL, default ./db/app.db)
#
# The schema path is user-supplied (MIGRATION_SCHEMA_PATH, default
# ./db/schema.py); a missing schema is reported, not fatal.
#
# Migrations run from a developer machine or CI, never inside the sandbox,
# so only the process environment is consulted.
#
# Usage:
#   from lib.migrations import resolve_migration_target
#   target = resolve_migration_target()
#   print(target.driver)  # "d1-http" or "libsql"
# =============================================================================

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from lib.database import DEFAULT_LIBSQL_URL

# Set up logging for this module
logger = logging.getLogger(__name__)

D1_CREDENTIAL_KEYS = (
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_DATABASE_ID",
    "CLOUDFLARE_API_TOKEN",
)

# The schema module is written by the project using this starter, not shipped
# with it; MIGRATION_SCHEMA_PATH points elsewhere
SCHEMA_PATH = "./db/schema.py"
SCHEMA_PATH_KEY = "MIGRATION_SCHEMA_PATH"
MIGRATIONS_DIR = "./db/migrations"

# Skip the KV bookkeeping tables Cloudflare creates in D1
TABLES_FILTER = r"^(?!.*_cf_KV).*$"


@dataclass
class MigrationTarget:
    """Where and how to run migrations."""
    driver: Literal["d1-http", "libsql"]
    credentials: dict[str, str] = field(default_factory=dict)
    dialect: str = "sqlite"
    schema: str = SCHEMA_PATH
    out: str = MIGRATIONS_DIR
    tables_filter: str = TABLES_FILTER

    def to_dict(self) -> dict[str, Any]:
        """Serializable view with secrets redacted."""
        credentials = {
            key: ("***" if key == "token" else value)
            for key, value in self.credentials.items()
        }
        return {
            "driver": self.driver,
            "dialect": self.dialect,
            "schema": self.schema,
            "schema_exists": os.path.exists(self.schema),
            "out": self.out,
            "tables_filter": self.tables_filter,
            "credentials": credentials,
        }


def resolve_migration_target(process_env: Mapping[str, str] | None = None) -> MigrationTarget:
    """
    Pick the migration target from the process environment.

    Args:
        process_env: Environment to read; defaults to os.environ

    Returns:
        MigrationTarget for D1 (all three credentials set) or libSQL
    """
    env = os.environ if process_env is None else process_env

    schema = env.get(SCHEMA_PATH_KEY) or SCHEMA_PATH
    if not os.path.exists(schema):
        logger.warning(f"Schema not found at {schema}; set {SCHEMA_PATH_KEY} to your schema module")

    if all(env.get(key) for key in D1_CREDENTIAL_KEYS):
        logger.info("Using Cloudflare D1 via d1-http driver")
        return MigrationTarget(
            driver="d1-http",
            credentials={
                "account_id": env["CLOUDFLARE_ACCOUNT_ID"],
                "database_id": env["CLOUDFLARE_DATABASE_ID"],
                "token": env["CLOUDFLARE_API_TOKEN"],
            },
            schema=schema,
        )

    url = env.get("LIBSQL_URL") or DEFAULT_LIBSQL_URL
    logger.info(f"Using libsql migration target ({url})")
    return MigrationTarget(driver="libsql", credentials={"url": url}, schema=schema)
