"""
Admin analytics helpers.

Weekly buckets start on Monday (ISO weeks) and are returned oldest first, always
zero-filled so charts get a fixed number of points.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional


def week_start(value: datetime | date) -> date:
    """Monday of the ISO week containing value"""
    day = value.date() if isinstance(value, datetime) else value
    return day - timedelta(days=day.weekday())


def weekly_buckets(
    timestamps: Iterable[Optional[datetime]], weeks: int = 8, now: Optional[datetime] = None
) -> list[dict]:
    """Count timestamps per week for the last `weeks` weeks, ending with the current week"""
    if weeks < 1:
        raise ValueError("weeks must be at least 1")

    current = week_start(now or datetime.utcnow())
    starts = [current - timedelta(weeks=offset) for offset in range(weeks - 1, -1, -1)]
    counts = {start: 0 for start in starts}

    for ts in timestamps:
        if ts is None:
            continue
        bucket = week_start(ts)
        if bucket in counts:
            counts[bucket] += 1

    return [{"week_start": start.isoformat(), "count": counts[start]} for start in starts]


def top_locations(location_names: Iterable[Optional[str]], limit: int = 10) -> list[dict]:
    """Most common location names, case-insensitive, blank names ignored"""
    counter: Counter = Counter()
    display: dict[str, str] = {}
    for name in location_names:
        if not name or not name.strip():
            continue
        key = name.strip().lower()
        counter[key] += 1
        display.setdefault(key, name.strip())
    return [{"location": display[key], "count": count} for key, count in counter.most_common(limit)]
