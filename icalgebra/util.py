"""Utility constants and helpers for icalgebra.

Time unit constants are ``timedelta`` values. Period names are the
granularities accepted by ``Event.split_up`` and ``Event.explode``.
"""

from datetime import date, datetime, time, timedelta
from typing import Literal, TypeAlias

from dateutil.relativedelta import relativedelta

# Smallest step between two distinct instants. Ends encoded "one tick before
# midnight" use this.
RESOLUTION = timedelta(microseconds=1)

# Time unit constants
SECOND = timedelta(seconds=1)
MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
WEEK = timedelta(weeks=1)

Period: TypeAlias = Literal["year", "month", "week", "day", "hour", "minute", "second"]

PERIODS: dict[str, relativedelta] = {
    "year": relativedelta(years=1),
    "month": relativedelta(months=1),
    "week": relativedelta(weeks=1),
    "day": relativedelta(days=1),
    "hour": relativedelta(hours=1),
    "minute": relativedelta(minutes=1),
    "second": relativedelta(seconds=1),
}


def check_period(period: str) -> None:
    """Raise ValueError unless ``period`` is a known period name."""
    if period not in PERIODS:
        valid = ", ".join(PERIODS)
        raise ValueError(
            f"Invalid period: {period!r}\n"
            f"Valid periods: {valid}\n"
            f"Example: event.split_up('day')"
        )


def truncate(dt: datetime, period: str) -> datetime:
    """Truncate ``dt`` to the start of its ``period``.

    Weeks start on Monday.
    """
    check_period(period)
    if period == "year":
        return datetime(dt.year, 1, 1)
    if period == "month":
        return datetime(dt.year, dt.month, 1)
    if period == "week":
        monday = dt.date() - timedelta(days=dt.weekday())
        return datetime.combine(monday, time.min)
    if period == "day":
        return datetime.combine(dt.date(), time.min)
    if period == "hour":
        return dt.replace(minute=0, second=0, microsecond=0)
    if period == "minute":
        return dt.replace(second=0, microsecond=0)
    return dt.replace(microsecond=0)


def advance(dt: datetime, period: str, n: int = 1) -> datetime:
    """Move ``dt`` forward by ``n`` calendar periods."""
    check_period(period)
    return dt + PERIODS[period] * n


def next_boundary(dt: datetime, period: str) -> datetime:
    """Return the first period boundary strictly after ``dt``."""
    return advance(truncate(dt, period), period)


def end_of(dt: datetime, period: str) -> datetime:
    """Return the last instant of the period containing ``dt``."""
    return next_boundary(dt, period) - RESOLUTION


def to_floating(dt: datetime | date) -> datetime:
    """Convert a property value to a floating (naive) instant.

    Dates become midnight. Aware datetimes keep their wall-clock time and lose
    their zone.
    """
    if not isinstance(dt, datetime):
        return datetime.combine(dt, time.min)
    if dt.tzinfo is not None:
        return dt.replace(tzinfo=None)
    return dt
