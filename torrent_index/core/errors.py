"""
Error taxonomy for the torrent index.

Fatal at construction:
- DatabaseConnectionError: the engine cannot be reached
- SchemaError: pg_trgm is missing, or schema setup/migration/commit failed

Returned to callers:
- QueryError: invalid search/statistics arguments (raised before any SQL runs)
- TransientDBError: any other engine failure while executing an operation

Absorbed by ingestion (never escape `add_new_torrent`):
- ValidationError: name or file path is not valid text
- ConstraintError: zero total size, or the info hash is already stored
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg


class TorrentIndexError(RuntimeError):
    pass


class DatabaseConnectionError(TorrentIndexError):
    pass


class SchemaError(TorrentIndexError):
    pass


class QueryError(TorrentIndexError):
    pass


class TransientDBError(TorrentIndexError):
    pass


class ValidationError(TorrentIndexError):
    pass


class ConstraintError(TorrentIndexError):
    pass


# Everything the driver can raise once a connection exists.
ENGINE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@asynccontextmanager
async def wrap_engine_errors(operation: str) -> AsyncIterator[None]:
    """
    Re-raise engine failures as TransientDBError("<operation>: <detail>").
    """
    try:
        yield
    except ENGINE_ERRORS as e:
        raise TransientDBError(f"{operation}: {e}") from e
