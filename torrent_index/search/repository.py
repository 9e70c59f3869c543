"""
Search SQL (raw).

The torrent listing query is assembled from a closed set of clause variants:
- free-text filter + relevance column: present only when a query is given
- keyset predicate: present only on continuation pages
- sort column / direction: picked from OrderingCriteria and a bool

Only those internal choices are woven into the SQL text. Every value that comes
from the caller (query text, epoch, cursor, limit) is a bound parameter.
"""

from __future__ import annotations

import enum
from typing import Any

from torrent_index.core import db
from torrent_index.core.errors import wrap_engine_errors
from torrent_index.core.records import TorrentSummary, summary_from_row


class OrderingCriteria(enum.Enum):
    RELEVANCE = "RELEVANCE"
    TOTAL_SIZE = "TOTAL_SIZE"
    DISCOVERED_ON = "DISCOVERED_ON"
    N_FILES = "N_FILES"


# Column of the `listing` subquery each criterion sorts on.
ORDER_COLUMNS: dict[OrderingCriteria, str] = {
    OrderingCriteria.RELEVANCE: "relevance",
    OrderingCriteria.TOTAL_SIZE: "total_size",
    OrderingCriteria.DISCOVERED_ON: "discovered_on",
    OrderingCriteria.N_FILES: "n_files",
}


def like_pattern(query: str) -> str:
    """
    Substring pattern for ILIKE with the query's own wildcards escaped.
    """
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_listing_query(
    *,
    query: str,
    epoch: float,
    order_by: OrderingCriteria,
    ascending: bool,
    limit: int,
    last_ordered_value: Any = None,
    last_id: int | None = None,
) -> tuple[str, list[Any]]:
    """
    Return (sql, args) for one page of the torrent listing.

    Arguments are assumed to be validated already (see service.query_torrents).
    """
    args: list[Any] = []

    def bind(value: Any) -> str:
        args.append(value)
        return f"${len(args)}"

    epoch_ref = bind(float(epoch))

    if query:
        query_ref = bind(query)
        relevance = f"similarity(t.name, {query_ref})::float8"
        match = f"AND t.name ILIKE {bind(like_pattern(query))}"
    else:
        relevance = "NULL::float8"
        match = ""

    order_on = f"listing.{ORDER_COLUMNS[order_by]}"
    direction = "ASC" if ascending else "DESC"

    keyset = ""
    if last_id is not None:
        # Row-value comparison: ties on the sort column are broken by id.
        operator = ">" if ascending else "<"
        keyset = f"WHERE ({order_on}, listing.id) {operator} ({bind(last_ordered_value)}, {bind(last_id)})"

    limit_ref = bind(limit)

    sql = f"""
        SELECT
          listing.id,
          listing.info_hash,
          listing.name,
          listing.total_size,
          listing.discovered_on,
          listing.n_files,
          listing.relevance
        FROM (
          SELECT
            t.id,
            t.info_hash,
            t.name,
            t.total_size,
            t.discovered_on,
            (SELECT count(*) FROM files f WHERE f.torrent_id = t.id) AS n_files,
            {relevance} AS relevance
          FROM torrents t
          WHERE t.discovered_on <= to_timestamp({epoch_ref})
            {match}
        ) AS listing
        {keyset}
        ORDER BY {order_on} {direction}, listing.id {direction}
        LIMIT {limit_ref}
        """
    return sql, args


async def list_torrents(
    database: db.Database,
    *,
    query: str,
    epoch: float,
    order_by: OrderingCriteria,
    ascending: bool,
    limit: int,
    last_ordered_value: Any = None,
    last_id: int | None = None,
) -> list[TorrentSummary]:
    sql, args = build_listing_query(
        query=query,
        epoch=epoch,
        order_by=order_by,
        ascending=ascending,
        limit=limit,
        last_ordered_value=last_ordered_value,
        last_id=last_id,
    )
    async with wrap_engine_errors("query_torrents"):
        rows = await db.fetch_all(database, sql, *args)
    return [summary_from_row(r) for r in rows]
