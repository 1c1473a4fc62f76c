"""Month bucket helpers for the start-time secondary index."""
from datetime import date, datetime, timezone
from typing import List, Union

RFC3339_FORMAT = '%Y-%m-%dT%H:%M:%SZ'
BUCKET_FORMAT = '%Y-%m'


def to_utc(value: Union[datetime, date]) -> datetime:
    """
    Normalize a datetime or date to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC and dates map to
    midnight UTC.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_rfc3339(value: Union[datetime, date]) -> str:
    return to_utc(value).strftime(RFC3339_FORMAT)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp into an aware UTC datetime."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(value))


def month_bucket(value: Union[datetime, date]) -> str:
    """Return the ``YYYY-MM`` bucket of the UTC instant."""
    return to_utc(value).strftime(BUCKET_FORMAT)


def month_buckets(date_from: Union[datetime, date],
                  date_to: Union[datetime, date]) -> List[str]:
    """
    Enumerate every month bucket between two instants, inclusive.

    Args:
        date_from: Start of the range
        date_to: End of the range

    Returns:
        Bucket strings in ascending order; at least one bucket when
        date_from <= date_to, none otherwise
    """
    start = to_utc(date_from)
    end = to_utc(date_to)
    year, month = start.year, start.month

    buckets = []
    while (year, month) <= (end.year, end.month):
        buckets.append(f'{year:04d}-{month:02d}')
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return buckets
