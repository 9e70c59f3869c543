"""
Plain records shared by the ingestion and query sides.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class File:
    size: int
    # bytes when the discovery source could not decode it; validated on insert.
    path: str | bytes


@dataclass(frozen=True)
class TorrentSummary:
    id: int
    info_hash: bytes
    name: str
    total_size: int
    discovered_on: datetime
    n_files: int
    relevance: float | None = None


def summary_from_row(row: dict[str, Any]) -> TorrentSummary:
    relevance = row.get("relevance")
    return TorrentSummary(
        id=int(row["id"]),
        info_hash=bytes(row["info_hash"]),
        name=str(row["name"]),
        total_size=int(row["total_size"]),
        discovered_on=row["discovered_on"],
        n_files=int(row["n_files"]),
        relevance=float(relevance) if relevance is not None else None,
    )
