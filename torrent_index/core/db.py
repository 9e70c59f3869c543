"""
Async database access helpers (raw SQL) using asyncpg.

`open_database()` creates the connection pool, runs schema setup and returns an
immutable `Database` handle. Every repository function takes that handle as its
first argument; nothing here is module-global.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import schema as schema_setup
from . import settings
from .errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

# Query parameters that are ours (or libpq's) and must not reach asyncpg.
_STRIPPED_PARAMS = {"schema", "sslmode"}


@dataclass(frozen=True)
class Database:
    pool: asyncpg.Pool
    schema: str

    @property
    def search_path(self) -> str:
        return search_path_for(self.schema)


def search_path_for(schema: str) -> str:
    # pg_trgm's operator classes and functions usually live in `public`.
    return f'"{schema}", public'


def resolve_dsn(url: str) -> tuple[str, str]:
    """
    Split a connection locator into (dsn for asyncpg, schema name).

    The optional `schema` query parameter picks the schema; it defaults to
    `magneticod`. `sslmode` is dropped as well.
    """
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)

    schema = settings.DEFAULT_SCHEMA
    for key, value in params:
        if key == "schema" and value.strip():
            schema = value.strip()

    if not _IDENTIFIER_RE.match(schema):
        raise DatabaseConnectionError(f"Invalid schema name {schema!r}.")

    query = urlencode([(k, v) for (k, v) in params if k not in _STRIPPED_PARAMS])
    dsn = urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
    return dsn, schema


async def open_database(
    url: str,
    *,
    min_size: int | None = None,
    max_size: int | None = None,
) -> Database:
    """
    Connect, verify prerequisites and bring the schema up to date.

    Raises DatabaseConnectionError when the engine cannot be reached and
    SchemaError when setup fails; no pool is left open in either case.
    """
    dsn, schema = resolve_dsn(url)
    min_size = min_size if min_size is not None else settings.pool_min_size()
    max_size = max_size if max_size is not None else settings.pool_max_size()

    try:
        pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max(min_size, max_size),
            server_settings={"search_path": search_path_for(schema)},
        )
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise DatabaseConnectionError(f"asyncpg.create_pool: {e}") from e

    database = Database(pool=pool, schema=schema)
    try:
        await schema_setup.setup_database(database)
    except BaseException:
        await pool.close()
        raise

    return database


async def close_database(database: Database) -> None:
    await database.pool.close()
    logger.info("database_closed schema=%s", database.schema)


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(database: Database, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await database.pool.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(database: Database, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await database.pool.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def fetch_value(database: Database, sql: str, *args: Any) -> Any:
    return await database.pool.fetchval(sql, *args)
