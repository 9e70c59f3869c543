"""
Search API endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from torrent_index.core import dependencies, settings
from torrent_index.core.db import Database
from torrent_index.core.errors import QueryError
from torrent_index.torrents.schemas import TorrentResponse

from . import service
from .repository import OrderingCriteria

router = APIRouter()


def parse_cursor_value(raw: str, order_by: OrderingCriteria) -> Any:
    """
    Decode `last_ordered_value` from the query string for the given ordering.

    Discovery times travel as ISO-8601 so no precision is lost; naive values
    are taken as UTC.
    """
    raw = raw.strip()
    try:
        if order_by is OrderingCriteria.DISCOVERED_ON:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        if order_by is OrderingCriteria.RELEVANCE:
            return float(raw)
        return int(raw)
    except ValueError as e:
        raise QueryError(f"Invalid last_ordered_value {raw!r} for ordering {order_by.value}") from e


@router.get("/api/v0.1/torrents")
async def query_torrents(
    query: str = Query(default="", max_length=500),
    epoch: int | None = Query(default=None, ge=0),
    order_by: str = Query(default=OrderingCriteria.DISCOVERED_ON.value),
    ascending: bool = False,
    limit: int = Query(default=20, ge=1),
    last_ordered_value: str | None = None,
    last_id: int | None = Query(default=None, ge=0),
    database: Database = Depends(dependencies.get_database),
) -> dict:
    if limit > settings.max_page_size():
        raise HTTPException(
            status_code=400,
            detail=f"limit must be <= {settings.max_page_size()}",
        )

    ordering = service.parse_ordering(order_by)
    cursor_value = parse_cursor_value(last_ordered_value, ordering) if last_ordered_value is not None else None

    results = await service.query_torrents(
        database,
        query,
        epoch=epoch,
        order_by=ordering,
        ascending=ascending,
        limit=limit,
        last_ordered_value=cursor_value,
        last_id=last_id,
    )
    return {
        "query": query,
        "order_by": ordering.value,
        "ascending": ascending,
        "limit": limit,
        "count": len(results),
        "results": [TorrentResponse.from_summary(r) for r in results],
    }
