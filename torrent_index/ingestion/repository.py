"""
Ingestion persistence.
This module is where ingestion-related SQL lives.
"""

from __future__ import annotations

import logging
from typing import Sequence

import asyncpg
from asyncpg import exceptions as pg_exc

from torrent_index.core import db
from torrent_index.core.errors import ConstraintError, ValidationError, wrap_engine_errors
from torrent_index.core.records import File

from . import service
from .service import IngestOutcome

logger = logging.getLogger(__name__)


async def does_torrent_exist(database: db.Database, info_hash: bytes) -> bool:
    async with wrap_engine_errors("does_torrent_exist"):
        row = await db.fetch_one(
            database,
            "SELECT 1 AS ok FROM torrents WHERE info_hash = $1",
            info_hash,
        )
    return row is not None


async def _insert_torrent(
    conn: asyncpg.Connection,
    *,
    info_hash: bytes,
    name: str,
    metadata: bytes,
    total_size: int,
) -> int:
    try:
        torrent_id = await conn.fetchval(
            """
            INSERT INTO torrents (info_hash, name, metadata, total_size, discovered_on)
            VALUES ($1, $2, $3, $4, now())
            RETURNING id
            """,
            info_hash,
            name,
            metadata,
            total_size,
        )
    except pg_exc.UniqueViolationError as e:
        # Another writer stored the same hash between our check and this insert.
        raise ConstraintError("info_hash already stored") from e

    if torrent_id is None:
        raise RuntimeError("Failed to insert torrent.")
    return int(torrent_id)


def _file_records(torrent_id: int, files: Sequence[File]) -> list[tuple[int, int, str]]:
    """
    Build (torrent_id, size, path) rows; the first bad path raises ValidationError.
    """
    records = []
    for f in files:
        try:
            path = service.require_text(f.path, "path")
        except ValidationError as e:
            raise ValidationError(f"{e}: {f.path!r}") from e
        records.append((torrent_id, int(f.size), path))
    return records


async def add_new_torrent(
    database: db.Database,
    info_hash: bytes,
    name: str | bytes,
    files: Sequence[File],
    metadata: bytes,
) -> IngestOutcome:
    """
    Insert a torrent + its files in a single transaction.

    Every outcome is a success. Bad names, negative file sizes, zero-size
    torrents and known hashes write nothing. A bad file path aborts the
    transaction after the torrent row was inserted, so nothing of that torrent
    is persisted either.

    Raises TransientDBError for any other engine failure (rolled back).
    """
    hash_hex = info_hash.hex()

    try:
        text_name = service.require_text(name, "name")
    except ValidationError:
        logger.warning("torrent_skipped_invalid_name info_hash=%s name=%r", hash_hex, name)
        return IngestOutcome.INVALID_NAME

    if service.has_negative_size(files):
        logger.debug("torrent_skipped_negative_file_size info_hash=%s", hash_hex)
        return IngestOutcome.INVALID_SIZE

    # The torrents table rejects total_size = 0.
    size = service.total_size(files)
    if size <= 0:
        logger.debug("torrent_skipped_zero_size info_hash=%s", hash_hex)
        return IngestOutcome.ZERO_SIZE

    if await does_torrent_exist(database, info_hash):
        logger.debug("torrent_skipped_duplicate info_hash=%s", hash_hex)
        return IngestOutcome.DUPLICATE

    try:
        async with wrap_engine_errors("add_new_torrent"):
            async with database.pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    torrent_id = await _insert_torrent(
                        conn,
                        info_hash=info_hash,
                        name=text_name,
                        metadata=metadata,
                        total_size=size,
                    )
                    records = _file_records(torrent_id, files)
                    await conn.executemany(
                        "INSERT INTO files (torrent_id, size, path) VALUES ($1, $2, $3)",
                        records,
                    )
    except ConstraintError:
        logger.debug("torrent_skipped_duplicate info_hash=%s", hash_hex)
        return IngestOutcome.DUPLICATE
    except ValidationError as e:
        logger.warning("torrent_skipped_invalid_path info_hash=%s detail=%s", hash_hex, e)
        return IngestOutcome.INVALID_PATH

    logger.debug("torrent_added info_hash=%s files=%s total_size=%s", hash_hex, len(files), size)
    return IngestOutcome.ADDED
