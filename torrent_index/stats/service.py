"""
Discovery statistics.

A period token is a date with an implied granularity:

    2018            -> Year
    2018-04         -> Month
    2018-W16        -> Week (ISO)
    2018-04-20      -> Day
    2018-04-20T15   -> Hour

`get_statistics(from_, n)` covers `from_` plus `n` units of that granularity
and groups discoveries into buckets labelled at the same granularity. All
times are UTC.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from torrent_index.core import db
from torrent_index.core.errors import QueryError

from . import repository


class Granularity(enum.Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# to_char() format producing the bucket label.
LABEL_FORMATS: dict[Granularity, str] = {
    Granularity.YEAR: "YYYY",
    Granularity.MONTH: "YYYY-MM",
    Granularity.WEEK: 'IYYY-"W"IW',
    Granularity.DAY: "YYYY-MM-DD",
    Granularity.HOUR: 'YYYY-MM-DD"T"HH24',
}

_PATTERNS: list[tuple[re.Pattern[str], Granularity]] = [
    (re.compile(r"^(\d{4})$"), Granularity.YEAR),
    (re.compile(r"^(\d{4})-(\d{2})$"), Granularity.MONTH),
    (re.compile(r"^(\d{4})-W(\d{2})$"), Granularity.WEEK),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), Granularity.DAY),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2})$"), Granularity.HOUR),
]


@dataclass(frozen=True)
class StatisticsBucket:
    n_discovered: int
    total_size: int
    n_files: int


@dataclass
class Statistics:
    # Sparse: labels without discoveries are absent; treat them as zero.
    buckets: dict[str, StatisticsBucket] = field(default_factory=dict)

    def columns(self) -> dict[str, dict[str, int]]:
        return {
            "n_discovered": {k: b.n_discovered for k, b in self.buckets.items()},
            "total_size": {k: b.total_size for k, b in self.buckets.items()},
            "n_files": {k: b.n_files for k, b in self.buckets.items()},
        }


def parse_period(token: str) -> tuple[datetime, Granularity]:
    """
    Parse a period token into (start time in UTC, granularity).
    """
    raw = (token or "").strip()
    for pattern, granularity in _PATTERNS:
        m = pattern.match(raw)
        if m is None:
            continue
        parts = [int(p) for p in m.groups()]
        try:
            if granularity is Granularity.WEEK:
                start = datetime.fromisocalendar(parts[0], parts[1], 1)
            elif granularity is Granularity.YEAR:
                start = datetime(parts[0], 1, 1)
            elif granularity is Granularity.MONTH:
                start = datetime(parts[0], parts[1], 1)
            else:
                start = datetime(*parts)
        except ValueError as e:
            raise QueryError(f"Invalid period {token!r}: {e}") from e
        return start.replace(tzinfo=timezone.utc), granularity

    raise QueryError(
        f"Invalid period {token!r}. Expected YYYY, YYYY-MM, YYYY-Www, YYYY-MM-DD or YYYY-MM-DDTHH."
    )


def _add_months(start: datetime, months: int) -> datetime:
    index = start.month - 1 + months
    return start.replace(year=start.year + index // 12, month=index % 12 + 1)


def period_end(start: datetime, granularity: Granularity, n: int) -> datetime:
    try:
        if granularity is Granularity.YEAR:
            return start.replace(year=start.year + n)
        if granularity is Granularity.MONTH:
            return _add_months(start, n)
        if granularity is Granularity.WEEK:
            return start + timedelta(weeks=n)
        if granularity is Granularity.DAY:
            return start + timedelta(days=n)
        return start + timedelta(hours=n)
    except (ValueError, OverflowError) as e:
        raise QueryError(f"Period end is out of range: {e}") from e


def _bucket_from_row(row: dict[str, Any]) -> StatisticsBucket:
    return StatisticsBucket(
        n_discovered=int(row["n_discovered"]),
        total_size=int(row["total_size"] or 0),
        n_files=int(row["n_files"]),
    )


async def get_statistics(database: db.Database, from_: str, n: int) -> Statistics:
    """
    Bucketed discovery counts, file counts and total size over [from_, from_ + n units].
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise QueryError("n must be a positive integer")

    start, granularity = parse_period(from_)
    end = period_end(start, granularity, n)

    rows = await repository.bucket_discoveries(
        database,
        start=start,
        end=end,
        label_format=LABEL_FORMATS[granularity],
    )
    return Statistics(buckets={str(r["bucket"]): _bucket_from_row(r) for r in rows})
