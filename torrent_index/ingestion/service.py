"""
Ingestion "service layer".

This file contains checks that run before (or while) a torrent is written:
- names and paths must be storable text
- file sizes must not be negative
- the total size must be positive

None of these failures are errors for the caller: the discovery source is
unreliable and bad input is logged and dropped.
"""

from __future__ import annotations

import enum
from typing import Iterable

from torrent_index.core.errors import ValidationError
from torrent_index.core.records import File


class IngestOutcome(enum.Enum):
    ADDED = "added"
    INVALID_NAME = "invalid_name"
    INVALID_SIZE = "invalid_size"
    ZERO_SIZE = "zero_size"
    DUPLICATE = "duplicate"
    INVALID_PATH = "invalid_path"


def require_text(value: str | bytes, what: str) -> str:
    """
    Return `value` as str if PostgreSQL can store it as text.

    bytes must be strict UTF-8. str must encode to UTF-8 (no lone surrogates,
    which is what surrogateescape decoding leaves behind). NUL is rejected
    because `text` cannot hold it.
    """
    if isinstance(value, bytes):
        try:
            text = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"{what} is not valid UTF-8") from e
    else:
        text = value
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValidationError(f"{what} is not valid UTF-8") from e

    if "\x00" in text:
        raise ValidationError(f"{what} contains NUL")
    return text


def has_negative_size(files: Iterable[File]) -> bool:
    return any(int(f.size) < 0 for f in files)


def total_size(files: Iterable[File]) -> int:
    return sum(int(f.size) for f in files)
