"""
Environment-driven settings.

All knobs are plain environment variables with defaults; nothing is read from
files.
"""

from __future__ import annotations

import logging
import os

DEFAULT_SCHEMA = "magneticod"
DEFAULT_POOL_MIN = 1
DEFAULT_POOL_MAX = 3
DEFAULT_MAX_PAGE_SIZE = 100


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return url


def pool_min_size() -> int:
    return max(1, _env_int("TORRENT_INDEX_POOL_MIN", DEFAULT_POOL_MIN))


def pool_max_size() -> int:
    return max(pool_min_size(), _env_int("TORRENT_INDEX_POOL_MAX", DEFAULT_POOL_MAX))


def max_page_size() -> int:
    value = _env_int("TORRENT_INDEX_MAX_PAGE_SIZE", DEFAULT_MAX_PAGE_SIZE)
    return value if value > 0 else DEFAULT_MAX_PAGE_SIZE


def log_level() -> int:
    name = os.environ.get("TORRENT_INDEX_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names.
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def cors_origins() -> list[str]:
    raw = os.environ.get("TORRENT_INDEX_CORS_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()]
