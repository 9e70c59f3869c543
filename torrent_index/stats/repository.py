"""
Statistics SQL (raw).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from torrent_index.core import db
from torrent_index.core.errors import wrap_engine_errors


async def bucket_discoveries(
    database: db.Database,
    *,
    start: datetime,
    end: datetime,
    label_format: str,
) -> list[dict[str, Any]]:
    """
    One row per non-empty bucket: label, distinct torrents, distinct files, summed size.
    """
    # TODO: pre-aggregate per hour if this becomes slow on large indexes.
    async with wrap_engine_errors("get_statistics"):
        return await db.fetch_all(
            database,
            """
            SELECT
              to_char(t.discovered_on AT TIME ZONE 'UTC', $3) AS bucket,
              sum(f.size)::bigint AS total_size,
              count(DISTINCT t.id) AS n_discovered,
              count(DISTINCT f.id) AS n_files
            FROM torrents t
            JOIN files f ON f.torrent_id = t.id
            WHERE t.discovered_on >= $1
              AND t.discovered_on <= $2
            GROUP BY bucket
            ORDER BY bucket
            """,
            start,
            end,
            label_format,
        )


async def get_number_of_torrents(database: db.Database) -> int:
    """
    Estimated number of torrents from planner statistics (pg_class.reltuples).

    Much cheaper than count(*) but can lag behind, e.g. right after bulk
    inserts and before the next (auto)analyze. Never-analyzed tables report 0.
    """
    async with wrap_engine_errors("get_number_of_torrents"):
        estimate = await db.fetch_value(
            database,
            "SELECT reltuples::bigint AS estimate FROM pg_class WHERE oid = to_regclass('torrents')",
        )
    if estimate is None:
        return 0
    return max(0, int(estimate))
