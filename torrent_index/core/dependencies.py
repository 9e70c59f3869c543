"""
FastAPI dependencies shared by the routers.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from .db import Database

INFO_HASH_HEX_LEN = 40


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not initialized.",
        )
    return database


def parse_info_hash(infohash: str) -> bytes:
    raw = (infohash or "").strip()
    if len(raw) != INFO_HASH_HEX_LEN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Info hash must be {INFO_HASH_HEX_LEN} hex characters.",
        )
    try:
        return bytes.fromhex(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Info hash is not valid hex.",
        )
