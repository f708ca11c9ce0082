"""Centralised timestamp handling.

All chart times are integer seconds since epoch. Candle ``time`` values are
shifted by :data:`TIMEZONE_OFFSET` so the chart renders in local time; bucket
membership is always computed on raw UTC seconds.
"""

import time
from datetime import datetime, timezone

from chartfeed.types import Period, period_to_seconds


__all__ = [
    "TIMEZONE_OFFSET",
    "bucket_start",
    "current_bucket_time",
    "local_utc_offset",
    "now_seconds",
    "ts_to_iso",
]


def local_utc_offset() -> int:
    """Local UTC offset in seconds (east of UTC is positive)."""
    offset = datetime.now().astimezone().utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


# Computed once at import; display alignment only.
TIMEZONE_OFFSET: int = local_utc_offset()


def now_seconds() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


def bucket_start(ts: int | float, period: Period | str | int) -> int:
    """Start of the bucket containing *ts* (raw UTC seconds)."""
    period_s = period_to_seconds(period)
    return int(ts // period_s) * period_s


def current_bucket_time(
    period: Period | str | int,
    *,
    now: int | float | None = None,
    tz_offset: int = TIMEZONE_OFFSET,
) -> int:
    """Display time of the bucket that contains *now*."""
    if now is None:
        now = time.time()
    return bucket_start(now, period) + tz_offset


def ts_to_iso(ts: int | float) -> str:
    """Convert seconds since epoch to an ISO string (UTC)."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat().replace("T", " ")
