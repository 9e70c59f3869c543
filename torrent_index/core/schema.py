"""
Schema bootstrap and migrations.

Version 0 is FROZEN: it is created with "IF NOT EXISTS" semantics on every
startup, so running setup against an existing database is a no-op. Later
changes go into MIGRATIONS as numbered steps; each step is applied once, in
order, and recorded in `migrations(schema_version)`.

Everything after the pg_trgm check runs inside one transaction, so a failure
leaves no partial setup behind.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import asyncpg

from .errors import ENGINE_ERRORS, SchemaError

if TYPE_CHECKING:
    from .db import Database

logger = logging.getLogger(__name__)


SCHEMA_V0 = """
-- Torrents ID sequence generator
CREATE SEQUENCE IF NOT EXISTS seq_torrents_id;
-- Files ID sequence generator
CREATE SEQUENCE IF NOT EXISTS seq_files_id;

CREATE TABLE IF NOT EXISTS torrents (
    id             INTEGER PRIMARY KEY DEFAULT nextval('seq_torrents_id'),
    info_hash      bytea NOT NULL UNIQUE,
    name           TEXT NOT NULL,
    metadata       bytea NOT NULL,
    total_size     BIGINT NOT NULL CHECK(total_size > 0),
    discovered_on  TIMESTAMP WITH TIME ZONE NOT NULL
);

-- Indexes for search sorting options
CREATE INDEX IF NOT EXISTS idx_torrents_total_size ON torrents (total_size);
CREATE INDEX IF NOT EXISTS idx_torrents_discovered_on ON torrents (discovered_on);

-- pg_trgm GIN index for ILIKE and similarity() over names.
-- Patterns shorter than 3 characters cannot use it and fall back to a scan.
CREATE INDEX IF NOT EXISTS idx_torrents_name_gin_trgm ON torrents USING GIN (name gin_trgm_ops);

CREATE TABLE IF NOT EXISTS files (
    id          INTEGER PRIMARY KEY DEFAULT nextval('seq_files_id'),
    torrent_id  INTEGER NOT NULL REFERENCES torrents ON DELETE CASCADE ON UPDATE RESTRICT,
    size        BIGINT NOT NULL,
    path        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_files_torrent_id ON files (torrent_id);

CREATE TABLE IF NOT EXISTS migrations (
    schema_version  SMALLINT NOT NULL UNIQUE
);

INSERT INTO migrations (schema_version) VALUES (0) ON CONFLICT DO NOTHING;
"""

# target version -> SQL upgrading from (target - 1).
MIGRATIONS: dict[int, str] = {}


def latest_version() -> int:
    return max(MIGRATIONS.keys(), default=0)


async def _trgm_installed(conn: asyncpg.Connection) -> bool:
    row = await conn.fetchrow("SELECT 1 FROM pg_extension WHERE extname = 'pg_trgm'")
    return row is not None


async def _current_version(conn: asyncpg.Connection) -> int:
    version = await conn.fetchval("SELECT MAX(schema_version) FROM migrations")
    if version is None:
        raise SchemaError("migrations table is empty after bootstrap.")
    return int(version)


async def _apply_migrations(conn: asyncpg.Connection, current: int) -> int:
    latest = latest_version()
    if current > latest:
        raise SchemaError(
            f"Database schema version {current} is newer than the newest known version {latest}."
        )

    for target in sorted(v for v in MIGRATIONS if v > current):
        logger.warning("schema_migrating from=%s to=%s", target - 1, target)
        await conn.execute(MIGRATIONS[target])
        await conn.execute("INSERT INTO migrations (schema_version) VALUES ($1)", target)
        current = target

    return current


async def _bootstrap(conn: asyncpg.Connection, schema: str, search_path: str) -> int:
    await conn.execute(f'CREATE SCHEMA IF NOT EXISTS "{schema}"')
    # The pool's search_path may predate the schema; pin it for this transaction.
    await conn.execute("SELECT set_config('search_path', $1, true)", search_path)
    await conn.execute(SCHEMA_V0)
    return await _apply_migrations(conn, await _current_version(conn))


async def setup_database(database: Database) -> int:
    """
    Verify pg_trgm, create schema objects, apply pending migrations.

    Returns the schema version the database is at afterwards.
    """
    async with database.pool.acquire() as conn:  # type: asyncpg.Connection
        try:
            trgm = await _trgm_installed(conn)
        except ENGINE_ERRORS as e:
            raise SchemaError(f"pg_extension lookup: {e}") from e

        if not trgm:
            raise SchemaError(
                "pg_trgm extension is not enabled. "
                "You need to execute 'CREATE EXTENSION pg_trgm' on this database."
            )

        try:
            async with conn.transaction():
                version = await _bootstrap(conn, database.schema, database.search_path)
        except ENGINE_ERRORS as e:
            raise SchemaError(f"schema setup: {e}") from e

    logger.info("schema_ready schema=%s version=%s", database.schema, version)
    return version
