import asyncpg
import pytest

from torrent_index.core.errors import TransientDBError, ValidationError
from torrent_index.core.records import File
from torrent_index.ingestion import repository, service
from torrent_index.ingestion.service import IngestOutcome

H1 = bytes.fromhex("aa" * 20)


def test_require_text_accepts_utf8_bytes_and_str():
    assert service.require_text("ubuntu.iso", "name") == "ubuntu.iso"
    assert service.require_text("Ünïcode".encode("utf-8"), "name") == "Ünïcode"


@pytest.mark.parametrize("value", [b"\xff\xfe", "bad\udcff", "nul\x00byte", b"nul\x00"])
def test_require_text_rejects_unstorable_text(value):
    with pytest.raises(ValidationError):
        service.require_text(value, "name")


def test_total_size_sums_file_sizes():
    assert service.total_size([File(size=1, path="a"), File(size=41, path="b")]) == 42
    assert service.total_size([]) == 0


@pytest.mark.asyncio
async def test_invalid_name_is_skipped_without_touching_storage(database, pool):
    outcome = await repository.add_new_torrent(database, H1, b"\xff", [File(100, "a")], b"meta")

    assert outcome is IngestOutcome.INVALID_NAME
    assert not pool.touched()
    assert pool.conn.transactions == []


@pytest.mark.asyncio
async def test_zero_size_torrent_is_skipped(database, pool):
    outcome = await repository.add_new_torrent(
        database, H1, "empty", [File(0, "a"), File(0, "b")], b"meta"
    )

    assert outcome is IngestOutcome.ZERO_SIZE
    assert not pool.touched()


@pytest.mark.asyncio
@pytest.mark.parametrize("sizes", [[10, -3], [-5], [0, -1]])
async def test_negative_file_size_is_skipped(database, pool, sizes):
    files = [File(size, f"f{i}") for i, size in enumerate(sizes)]

    outcome = await repository.add_new_torrent(database, H1, "broken", files, b"meta")

    assert outcome is IngestOutcome.INVALID_SIZE
    assert not pool.touched()
    assert pool.conn.transactions == []
    pool.conn.executemany.assert_not_awaited()


@pytest.mark.asyncio
async def test_known_hash_is_a_no_op(database, pool):
    pool.fetchrow.return_value = {"ok": 1}

    outcome = await repository.add_new_torrent(database, H1, "ubuntu.iso", [File(100, "a")], b"meta")

    assert outcome is IngestOutcome.DUPLICATE
    assert pool.conn.transactions == []
    pool.conn.fetchval.assert_not_awaited()


@pytest.mark.asyncio
async def test_new_torrent_is_inserted_with_files_in_one_transaction(database, pool):
    pool.conn.fetchval.return_value = 7
    files = [File(100, "a"), File(23, "dir/b")]

    outcome = await repository.add_new_torrent(database, H1, "ubuntu.iso", files, b"meta")

    assert outcome is IngestOutcome.ADDED
    insert_args = pool.conn.fetchval.await_args.args
    assert "INSERT INTO torrents" in insert_args[0]
    assert insert_args[1:] == (H1, "ubuntu.iso", b"meta", 123)

    sql, records = pool.conn.executemany.await_args.args
    assert "INSERT INTO files" in sql
    assert records == [(7, 100, "a"), (7, 23, "dir/b")]

    assert len(pool.conn.transactions) == 1
    assert pool.conn.transactions[0].committed


@pytest.mark.asyncio
async def test_invalid_path_discards_the_already_inserted_torrent(database, pool):
    pool.conn.fetchval.return_value = 7
    files = [File(100, "ok"), File(5, b"\xc3\x28")]

    outcome = await repository.add_new_torrent(database, H1, "ubuntu.iso", files, b"meta")

    assert outcome is IngestOutcome.INVALID_PATH
    pool.conn.fetchval.assert_awaited_once()
    pool.conn.executemany.assert_not_awaited()
    tx = pool.conn.transactions[0]
    assert tx.rolled_back and not tx.committed


@pytest.mark.asyncio
async def test_concurrent_duplicate_insert_is_reported_as_duplicate(database, pool):
    pool.conn.fetchval.side_effect = asyncpg.exceptions.UniqueViolationError("duplicate key")

    outcome = await repository.add_new_torrent(database, H1, "ubuntu.iso", [File(100, "a")], b"meta")

    assert outcome is IngestOutcome.DUPLICATE
    assert pool.conn.transactions[0].rolled_back


@pytest.mark.asyncio
async def test_other_engine_failures_surface_as_transient_errors(database, pool):
    pool.conn.fetchval.return_value = 7
    pool.conn.executemany.side_effect = asyncpg.PostgresError("disk full")

    with pytest.raises(TransientDBError) as excinfo:
        await repository.add_new_torrent(database, H1, "ubuntu.iso", [File(100, "a")], b"meta")

    assert str(excinfo.value).startswith("add_new_torrent:")
    assert pool.conn.transactions[0].rolled_back


@pytest.mark.asyncio
async def test_commit_failure_surfaces_as_transient_error(database, pool):
    pool.conn.fetchval.return_value = 7
    pool.conn.commit_error = asyncpg.exceptions.SerializationError("could not serialize")

    with pytest.raises(TransientDBError):
        await repository.add_new_torrent(database, H1, "ubuntu.iso", [File(100, "a")], b"meta")


@pytest.mark.asyncio
async def test_does_torrent_exist(database, pool):
    assert await repository.does_torrent_exist(database, H1) is False

    pool.fetchrow.return_value = {"ok": 1}
    assert await repository.does_torrent_exist(database, H1) is True
    assert pool.fetchrow.await_args.args[1] == H1


@pytest.mark.asyncio
async def test_does_torrent_exist_wraps_connection_loss(database, pool):
    pool.fetchrow.side_effect = ConnectionResetError("gone")

    with pytest.raises(TransientDBError):
        await repository.does_torrent_exist(database, H1)
