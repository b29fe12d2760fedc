from datetime import date, datetime

import pytest

from haven.services.analytics import top_locations, week_start, weekly_buckets


def test_week_starts_on_monday():
    # 2026-10-15 is a Thursday
    assert week_start(date(2026, 10, 15)) == date(2026, 10, 12)
    assert week_start(datetime(2026, 10, 12, 8, 30)) == date(2026, 10, 12)


def test_weekly_buckets_zero_filled_oldest_first():
    now = datetime(2026, 10, 15, 12, 0)
    stamps = [
        datetime(2026, 10, 13, 9, 0),
        datetime(2026, 10, 14, 9, 0),
        datetime(2026, 10, 1, 9, 0),
        datetime(2025, 1, 1),
        None,
    ]

    buckets = weekly_buckets(stamps, weeks=3, now=now)

    assert buckets == [
        {"week_start": "2026-09-28", "count": 1},
        {"week_start": "2026-10-05", "count": 0},
        {"week_start": "2026-10-12", "count": 2},
    ]


def test_weekly_buckets_rejects_zero_weeks():
    with pytest.raises(ValueError):
        weekly_buckets([], weeks=0)


def test_top_locations_case_insensitive():
    names = ["Fitzroy", "fitzroy ", "Brunswick", None, "  ", "FITZROY"]
    assert top_locations(names, limit=2) == [
        {"location": "Fitzroy", "count": 3},
        {"location": "Brunswick", "count": 1},
    ]
