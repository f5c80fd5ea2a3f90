from __future__ import annotations

import math
from datetime import datetime

from once.errors import UnsupportedClock
from once.models.enums import Granularity


def local_now(timestamp: float) -> datetime:
    """Convert an epoch reading to naive local wall-clock time."""
    try:
        return datetime.fromtimestamp(timestamp)
    except (OverflowError, OSError, ValueError) as exc:
        raise UnsupportedClock(f"Cannot convert clock reading {timestamp!r} to local time: {exc}") from exc


def _iso_week(now: datetime) -> str:
    try:
        year, week, _ = now.isocalendar()
    except (OverflowError, ValueError) as exc:
        raise UnsupportedClock(f"ISO week numbering unavailable for {now!r}") from exc
    return f"{year:04d}-W{week:02d}"


def bucket_label(granularity: Granularity, now: datetime) -> str:
    """Label of the calendar slot containing ``now``.

    Week buckets follow the ISO calendar, so 2024-12-30 lands in
    ``2025-W01``.
    """
    if granularity is Granularity.HOUR:
        return f"{now.year:04d}-{now.month:02d}-{now.day:02d}T{now.hour:02d}"
    if granularity is Granularity.DAY:
        return f"{now.year:04d}-{now.month:02d}-{now.day:02d}"
    if granularity is Granularity.MONTH:
        return f"{now.year:04d}-{now.month:02d}"
    if granularity is Granularity.WEEK:
        return _iso_week(now)
    raise ValueError(f"unsupported granularity: {granularity}")


def elapsed_seconds(stamp_mtime: float | None, now: float) -> int | None:
    """Seconds since the last recorded run, or None when there is no usable one.

    Missing, non-finite and future mtimes all count as "never ran" so that a
    bad timestamp cannot block execution.
    """
    if stamp_mtime is None or not math.isfinite(stamp_mtime):
        return None
    elapsed = now - stamp_mtime
    if elapsed < 0:
        return None
    return int(elapsed)
