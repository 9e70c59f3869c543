"""
Statistics API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from torrent_index.core import dependencies
from torrent_index.core.db import Database

from . import repository, service

router = APIRouter()


@router.get("/api/v0.1/statistics")
async def get_statistics(
    from_: str = Query(..., alias="from", min_length=4, max_length=20),
    n: int = Query(..., ge=1),
    database: Database = Depends(dependencies.get_database),
) -> dict:
    stats = await service.get_statistics(database, from_, n)
    return {"from": from_, "n": n, **stats.columns()}


@router.get("/api/v0.1/statistics/count")
async def get_number_of_torrents(
    database: Database = Depends(dependencies.get_database),
) -> dict:
    """
    Estimated number of torrents; may lag behind recent inserts.
    """
    return {"estimate": await repository.get_number_of_torrents(database)}
