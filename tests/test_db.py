from unittest.mock import AsyncMock

import asyncpg
import pytest

from torrent_index.core import db
from torrent_index.core.errors import DatabaseConnectionError, SchemaError


def test_resolve_dsn_defaults_schema():
    dsn, schema = db.resolve_dsn("postgres://u:p@localhost:5432/postgres")

    assert schema == "magneticod"
    assert dsn == "postgres://u:p@localhost:5432/postgres"


def test_resolve_dsn_strips_schema_and_sslmode():
    dsn, schema = db.resolve_dsn(
        "postgres://u:p@db:5432/postgres?sslmode=disable&schema=index_v1&application_name=ix"
    )

    assert schema == "index_v1"
    assert dsn == "postgres://u:p@db:5432/postgres?application_name=ix"


@pytest.mark.parametrize("schema", ["bad-name", "1abc", "x;drop", "a" * 64])
def test_resolve_dsn_rejects_unsafe_schema_names(schema):
    with pytest.raises(DatabaseConnectionError):
        db.resolve_dsn(f"postgres://localhost/postgres?schema={schema}")


@pytest.mark.asyncio
async def test_unreachable_engine_fails_fast(monkeypatch):
    monkeypatch.setattr(asyncpg, "create_pool", AsyncMock(side_effect=ConnectionRefusedError("refused")))

    with pytest.raises(DatabaseConnectionError, match="create_pool"):
        await db.open_database("postgres://localhost:1/postgres")


@pytest.mark.asyncio
async def test_open_database_sets_search_path_and_runs_setup(monkeypatch, pool):
    create_pool = AsyncMock(return_value=pool)
    setup = AsyncMock(return_value=0)
    monkeypatch.setattr(asyncpg, "create_pool", create_pool)
    monkeypatch.setattr(db.schema_setup, "setup_database", setup)

    database = await db.open_database("postgres://localhost/postgres?schema=idx", min_size=1, max_size=3)

    assert database.schema == "idx"
    assert database.pool is pool
    kwargs = create_pool.await_args.kwargs
    assert kwargs["server_settings"] == {"search_path": '"idx", public'}
    assert (kwargs["min_size"], kwargs["max_size"]) == (1, 3)
    setup.assert_awaited_once_with(database)

    await db.close_database(database)
    pool.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_setup_closes_the_pool(monkeypatch, pool):
    monkeypatch.setattr(asyncpg, "create_pool", AsyncMock(return_value=pool))
    monkeypatch.setattr(db.schema_setup, "setup_database", AsyncMock(side_effect=SchemaError("no pg_trgm")))

    with pytest.raises(SchemaError):
        await db.open_database("postgres://localhost/postgres")

    pool.close.assert_awaited_once()
