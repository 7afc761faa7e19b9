from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from icalgebra.util import RESOLUTION


@dataclass(frozen=True, kw_only=True)
class Interval:
    """A half-open span ``[start, end)`` of floating instants.

    An interval without an end is floating: a zero-width marker at ``start``
    which only intersects queries that contain ``start`` itself. An interval
    whose end equals its start is the same kind of marker.
    """

    start: datetime
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.end is not None and self.start > self.end:
            raise ValueError(
                f"Interval start ({self.start}) must be <= end ({self.end})"
            )

    def __str__(self) -> str:
        """Human-friendly string showing range and duration."""
        if self.end is None:
            return f"Interval({self.start.isoformat()}, floating)"
        return (
            f"Interval({self.start.isoformat()}→{self.end.isoformat()}, "
            f"{self.duration})"
        )

    @property
    def is_floating(self) -> bool:
        return self.end is None

    @property
    def is_instant(self) -> bool:
        """True for zero-width intervals, floating or with ``end == start``."""
        return self.end is None or self.end == self.start

    @property
    def duration(self) -> timedelta:
        if self.end is None:
            return timedelta(0)
        return self.end - self.start

    @property
    def stop(self) -> datetime:
        """Exclusive upper bound for the instants this interval contains."""
        if self.is_instant:
            return self.start + RESOLUTION
        return self.end

    def contains(self, dt: datetime) -> bool:
        if self.is_instant:
            return dt == self.start
        return self.start <= dt < self.end

    def __contains__(self, dt: datetime) -> bool:
        return self.contains(dt)

    def intersects(self, query: Any) -> bool:
        """Return True if this interval overlaps ``query``.

        ``query`` may be an Interval, a Spans collection or an InstantSet.
        """
        if isinstance(query, Interval):
            if self.is_instant:
                return query.contains(self.start)
            if query.is_instant:
                return self.contains(query.start)
            return self.start < query.end and query.start < self.end
        if isinstance(query, Spans):
            return any(self.intersects(span) for span in query)
        if hasattr(query, "fetch"):
            return query.intersects(self)
        raise TypeError(
            f"Cannot intersect an Interval with {type(query).__name__!r}.\n"
            f"Expected Interval, Spans or InstantSet."
        )

    def intersection(self, other: "Interval") -> "Interval | None":
        """Return the overlap of two intervals, or None if they are disjoint."""
        if not self.intersects(other):
            return None
        if self.is_instant:
            return self
        if other.is_instant:
            return other
        return Interval(
            start=max(self.start, other.start), end=min(self.end, other.end)
        )


class Spans:
    """An ordered union of intervals, usable wherever a query is accepted."""

    def __init__(self, intervals: Iterable[Interval] = ()):
        self.intervals: tuple[Interval, ...] = tuple(
            sorted(intervals, key=lambda span: (span.start, span.stop))
        )

    def __iter__(self) -> Iterator[Interval]:
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def __repr__(self) -> str:
        return f"Spans({list(self.intervals)!r})"

    @property
    def bounds(self) -> Interval | None:
        """Smallest interval covering every span, None when empty."""
        if not self.intervals:
            return None
        return Interval(
            start=self.intervals[0].start,
            end=max(span.stop for span in self.intervals),
        )

    def contains(self, dt: datetime) -> bool:
        return any(span.contains(dt) for span in self.intervals)

    def __contains__(self, dt: datetime) -> bool:
        return self.contains(dt)

    def intersects(self, query: Any) -> bool:
        return any(span.intersects(query) for span in self.intervals)
