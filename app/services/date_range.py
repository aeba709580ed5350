"""
Date range helpers for metrics requests.

Request timestamps arrive as millisecond epochs; the database stores naive UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Optional

from app.schemas.metrics import DateRange

COMPARE_PREVIOUS_PERIOD = "prev"
COMPARE_YEAR_OVER_YEAR = "yoy"

# 9999-12-31T23:59:59.999Z, the last instant datetime can represent
MAX_EPOCH_MS = 253402300799999


class InvalidDateRange(ValueError):
    """A requested or derived date range falls outside what datetime can represent."""


def _from_epoch_ms(value: int) -> datetime:
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidDateRange(f"Timestamp out of range: {value}") from e


def _subtract_year(value: datetime) -> datetime:
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year
        return value.replace(year=value.year - 1, day=28)


def resolve_date_range(start_at: int, end_at: int) -> DateRange:
    """Convert the startAt/endAt query parameters into a UTC date range."""
    return DateRange(start_date=_from_epoch_ms(start_at), end_date=_from_epoch_ms(end_at))


def get_compare_date(compare: Optional[str], start_date: datetime, end_date: datetime) -> DateRange:
    """
    Resolve the comparison period for a date range.

    "yoy" compares against the same window one year earlier; any other token
    (including none) compares against the equally long window right before it.
    """
    try:
        if compare == COMPARE_YEAR_OVER_YEAR:
            return DateRange(start_date=_subtract_year(start_date), end_date=_subtract_year(end_date))

        diff = end_date - start_date
        return DateRange(start_date=start_date - diff, end_date=end_date - diff)
    except (ValueError, OverflowError) as e:
        raise InvalidDateRange(
            f"No comparison period for {start_date.isoformat()} - {end_date.isoformat()}"
        ) from e
