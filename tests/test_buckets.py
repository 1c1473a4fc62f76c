"""Unit tests for month bucket helpers."""
from datetime import date, datetime, timedelta, timezone

from storage.buckets import (
    format_rfc3339,
    month_bucket,
    month_buckets,
    parse_rfc3339,
    to_utc,
)


def test_month_bucket_uses_utc_month():
    """A start late on the last day in UTC+10 belongs to the UTC month."""
    sydney = timezone(timedelta(hours=10))
    start = datetime(2025, 10, 1, 8, 0, tzinfo=sydney)  # 2025-09-30T22:00Z

    assert month_bucket(start) == '2025-09'


def test_month_bucket_naive_is_utc():
    assert month_bucket(datetime(2025, 12, 31, 23, 59)) == '2025-12'


def test_month_buckets_same_day():
    day = datetime(2025, 8, 15, tzinfo=timezone.utc)
    assert month_buckets(day, day) == ['2025-08']


def test_month_buckets_within_one_month():
    assert month_buckets(date(2025, 8, 1), date(2025, 8, 31)) == ['2025-08']


def test_month_buckets_across_boundary():
    assert month_buckets(date(2025, 8, 28), date(2025, 9, 2)) == [
        '2025-08', '2025-09'
    ]


def test_month_buckets_across_year():
    assert month_buckets(date(2025, 11, 20), date(2026, 2, 1)) == [
        '2025-11', '2025-12', '2026-01', '2026-02'
    ]


def test_rfc3339_round_trip():
    value = datetime(2025, 9, 5, 20, 30, tzinfo=timezone.utc)

    assert format_rfc3339(value) == '2025-09-05T20:30:00Z'
    assert parse_rfc3339('2025-09-05T20:30:00Z') == value


def test_to_utc_converts_offsets():
    value = datetime(2025, 9, 5, 20, 30, tzinfo=timezone(timedelta(hours=-4)))

    assert to_utc(value) == datetime(2025, 9, 6, 0, 30, tzinfo=timezone.utc)
    assert to_utc(value).tzinfo == timezone.utc
