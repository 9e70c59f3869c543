"""
Point lookups of a torrent and its files by info hash.
"""

from __future__ import annotations

from torrent_index.core import db
from torrent_index.core.errors import wrap_engine_errors
from torrent_index.core.records import File, TorrentSummary, summary_from_row


async def get_torrent(database: db.Database, info_hash: bytes) -> TorrentSummary | None:
    """
    Return the torrent summary, or None when no torrent has this hash.
    """
    async with wrap_engine_errors("get_torrent"):
        row = await db.fetch_one(
            database,
            """
            SELECT
              t.id,
              t.info_hash,
              t.name,
              t.total_size,
              t.discovered_on,
              (SELECT count(*) FROM files f WHERE f.torrent_id = t.id) AS n_files
            FROM torrents t
            WHERE t.info_hash = $1
            """,
            info_hash,
        )
    return summary_from_row(row) if row is not None else None


async def get_files(database: db.Database, info_hash: bytes) -> list[File] | None:
    """
    Return the files of a torrent in insertion order.

    None means the torrent does not exist; an empty list means it exists and
    has no files.
    """
    async with wrap_engine_errors("get_files"):
        rows = await db.fetch_all(
            database,
            """
            SELECT f.size, f.path
            FROM torrents t
            LEFT JOIN files f ON f.torrent_id = t.id
            WHERE t.info_hash = $1
            ORDER BY f.id
            """,
            info_hash,
        )

    if not rows:
        return None
    # LEFT JOIN yields one all-NULL file row for a torrent without files.
    return [File(size=int(r["size"]), path=str(r["path"])) for r in rows if r["path"] is not None]
