from unittest.mock import AsyncMock

import pytest

from torrent_index.core.db import Database


class FakeTransaction:
    def __init__(self, commit_error=None):
        self.commit_error = commit_error
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.rolled_back = True
            return False
        if self.commit_error is not None:
            self.rolled_back = True
            raise self.commit_error
        self.committed = True
        return False


class FakeConnection:
    def __init__(self):
        self.fetchrow = AsyncMock(return_value=None)
        self.fetchval = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.execute = AsyncMock(return_value="OK")
        self.executemany = AsyncMock(return_value=None)
        self.commit_error = None
        self.transactions = []

    def transaction(self):
        tx = FakeTransaction(self.commit_error)
        self.transactions.append(tx)
        return tx


class _Acquire:
    def __init__(self, pool):
        self.pool = pool

    async def __aenter__(self):
        self.pool.acquired += 1
        return self.pool.conn

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakePool:
    """
    Stand-in for asyncpg.Pool: pool-level queries plus one reusable connection.
    """

    def __init__(self):
        self.conn = FakeConnection()
        self.fetchrow = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.fetchval = AsyncMock(return_value=None)
        self.close = AsyncMock(return_value=None)
        self.acquired = 0

    def acquire(self):
        return _Acquire(self)

    def touched(self) -> bool:
        return bool(
            self.acquired
            or self.fetchrow.await_count
            or self.fetch.await_count
            or self.fetchval.await_count
        )


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def database(pool):
    return Database(pool=pool, schema="magneticod")
