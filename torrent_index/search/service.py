"""
Search service.

Checks the caller's arguments before any SQL runs, then delegates to the
listing query in `repository`. Pagination is keyset-based: pass the sort value
and id of the last row of a page (see `cursor_for`) to get the next page.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from torrent_index.core import db
from torrent_index.core.errors import QueryError
from torrent_index.core.records import TorrentSummary

from . import repository
from .repository import OrderingCriteria


def parse_ordering(value: OrderingCriteria | str) -> OrderingCriteria:
    if isinstance(value, OrderingCriteria):
        return value
    try:
        return OrderingCriteria(str(value).strip().upper())
    except ValueError as e:
        allowed = [c.value for c in OrderingCriteria]
        raise QueryError(f"Unknown ordering {value!r}. Allowed: {allowed}") from e


def _check_cursor_type(order_by: OrderingCriteria, value: Any) -> None:
    if order_by is OrderingCriteria.DISCOVERED_ON:
        if not isinstance(value, datetime):
            raise QueryError("last_ordered_value must be a datetime when ordering by discovery time")
        if value.tzinfo is None or value.utcoffset() is None:
            raise QueryError("last_ordered_value must be timezone-aware")
    elif isinstance(value, bool):
        raise QueryError("last_ordered_value must be numeric for this ordering")
    elif order_by is OrderingCriteria.RELEVANCE:
        if not isinstance(value, (int, float)):
            raise QueryError("last_ordered_value must be numeric when ordering by relevance")
    elif not isinstance(value, int):
        # total_size and n_files are bigint.
        raise QueryError("last_ordered_value must be an integer for this ordering")


def cursor_for(summary: TorrentSummary, order_by: OrderingCriteria) -> tuple[Any, int]:
    """
    (last_ordered_value, last_id) that continues a listing after `summary`.
    """
    column = repository.ORDER_COLUMNS[order_by]
    return getattr(summary, column), summary.id


async def query_torrents(
    database: db.Database,
    query: str,
    *,
    epoch: float | None = None,
    order_by: OrderingCriteria | str = OrderingCriteria.DISCOVERED_ON,
    ascending: bool = False,
    limit: int = 20,
    last_ordered_value: Any = None,
    last_id: int | None = None,
) -> list[TorrentSummary]:
    """
    One page of torrents discovered at or before `epoch` (unix seconds, default now).

    Raises QueryError for invalid arguments without touching the database.
    """
    query = (query or "").strip()
    order_by = parse_ordering(order_by)

    if order_by is OrderingCriteria.RELEVANCE and not query:
        raise QueryError("cannot order by relevance without a query")
    if (last_ordered_value is None) != (last_id is None):
        raise QueryError("last_ordered_value and last_id must be given together")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise QueryError("limit must be a positive integer")
    if last_id is not None:
        _check_cursor_type(order_by, last_ordered_value)

    return await repository.list_torrents(
        database,
        query=query,
        epoch=time.time() if epoch is None else epoch,
        order_by=order_by,
        ascending=ascending,
        limit=limit,
        last_ordered_value=last_ordered_value,
        last_id=last_id,
    )
