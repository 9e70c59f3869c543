"""
Torrent API schemas (response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from torrent_index.core.records import File, TorrentSummary


class TorrentResponse(BaseModel):
    id: int
    info_hash: str
    name: str
    total_size: int
    discovered_on: datetime
    n_files: int
    relevance: float | None = None

    @classmethod
    def from_summary(cls, summary: TorrentSummary) -> "TorrentResponse":
        return cls(
            id=summary.id,
            info_hash=summary.info_hash.hex(),
            name=summary.name,
            total_size=summary.total_size,
            discovered_on=summary.discovered_on,
            n_files=summary.n_files,
            relevance=summary.relevance,
        )


class FileResponse(BaseModel):
    size: int
    path: str

    @classmethod
    def from_file(cls, f: File) -> "FileResponse":
        return cls(size=f.size, path=str(f.path))
