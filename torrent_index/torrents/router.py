"""
Single-torrent API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from torrent_index.core import dependencies
from torrent_index.core.db import Database

from . import repository, schemas

router = APIRouter()


@router.get("/api/v0.1/torrents/{infohash}")
async def get_torrent(
    infohash: str,
    database: Database = Depends(dependencies.get_database),
) -> schemas.TorrentResponse:
    summary = await repository.get_torrent(database, dependencies.parse_info_hash(infohash))
    if summary is None:
        raise HTTPException(status_code=404, detail="Torrent not found.")
    return schemas.TorrentResponse.from_summary(summary)


@router.get("/api/v0.1/torrents/{infohash}/filelist")
async def get_files(
    infohash: str,
    database: Database = Depends(dependencies.get_database),
) -> dict:
    files = await repository.get_files(database, dependencies.parse_info_hash(infohash))
    if files is None:
        raise HTTPException(status_code=404, detail="Torrent not found.")
    return {
        "files": [schemas.FileResponse.from_file(f) for f in files],
        "count": len(files),
    }
