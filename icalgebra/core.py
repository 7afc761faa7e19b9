import bisect
import heapq
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from datetime import datetime
from functools import reduce
from typing import Any

from typing_extensions import override

from icalgebra.interval import Interval, Spans
from icalgebra.util import RESOLUTION, Period, check_period, next_boundary, truncate

# Hull of a set known to be empty.
_NOWHERE = Interval(start=datetime.min, end=datetime.min)


class InstantSet(ABC):
    """A possibly infinite set of floating instants, iterated in ascending order."""

    @abstractmethod
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        """Yield instants in ascending order within ``[start, end)``."""
        pass

    @property
    def bounds(self) -> Interval | None:
        """Finite hull of this set, or None when the set is unbounded."""
        return None

    def __getitem__(self, item: slice) -> Iterable[datetime]:
        if not isinstance(item, slice):
            raise TypeError(
                f"InstantSet indices must be slices, got {type(item).__name__}.\n"
                f"Example: list(instants[datetime(2005, 7, 1):datetime(2005, 8, 1)])"
            )
        return self.fetch(item.start, item.stop)

    def __iter__(self) -> Iterator[datetime]:
        bounds = self.bounds
        if bounds is None:
            raise ValueError(
                f"Cannot iterate the unbounded {type(self).__name__}.\n"
                f"Intersect it with a finite query first:\n"
                f"  list(instants & Interval(start=..., end=...))"
            )
        return iter(self.fetch(bounds.start, bounds.stop))

    def contains(self, dt: datetime) -> bool:
        for _ in self.fetch(dt, dt + RESOLUTION):
            return True
        return False

    def __contains__(self, dt: datetime) -> bool:
        return self.contains(dt)

    def __or__(self, other: "InstantSet") -> "InstantSet":
        if not isinstance(other, InstantSet):
            raise TypeError(
                f"Cannot union (|) an InstantSet with {type(other).__name__!r}.\n"
                f"Hint: wrap explicit instants first: instants | Dates([dt1, dt2])"
            )
        return Union(self, other)

    def __and__(self, other: "InstantSet | Interval | Spans") -> "InstantSet":
        if isinstance(other, InstantSet):
            return Intersection(self, other)
        if isinstance(other, Interval):
            return Clipped(self, Spans([other]))
        if isinstance(other, Spans):
            return Clipped(self, other)
        raise TypeError(
            f"Cannot intersect (&) an InstantSet with {type(other).__name__!r}.\n"
            f"Expected InstantSet, Interval or Spans."
        )

    def union(self, other: "InstantSet") -> "InstantSet":
        return self | other

    def intersection(self, other: "InstantSet | Interval | Spans") -> "InstantSet":
        return self & other

    def intersects(self, query: "InstantSet | Interval | Spans") -> bool:
        """Return True if at least one instant of this set lies in ``query``."""
        for _ in self & query:
            return True
        return False


class EmptySet(InstantSet):
    @property
    @override
    def bounds(self) -> Interval:
        return _NOWHERE

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        return ()


class Dates(InstantSet):
    """A finite set of explicit instants."""

    def __init__(self, instants: Iterable[datetime] = ()):
        self.instants: tuple[datetime, ...] = tuple(sorted(set(instants)))

    def __repr__(self) -> str:
        return f"Dates({list(self.instants)!r})"

    def __len__(self) -> int:
        return len(self.instants)

    @property
    @override
    def bounds(self) -> Interval:
        if not self.instants:
            return _NOWHERE
        return Interval(start=self.instants[0], end=self.instants[-1] + RESOLUTION)

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        lo = 0 if start is None else bisect.bisect_left(self.instants, start)
        hi = (
            len(self.instants)
            if end is None
            else bisect.bisect_left(self.instants, end)
        )
        return self.instants[lo:hi]

    @override
    def contains(self, dt: datetime) -> bool:
        idx = bisect.bisect_left(self.instants, dt)
        return idx < len(self.instants) and self.instants[idx] == dt


class Union(InstantSet):
    def __init__(self, *sources: InstantSet):
        flattened: list[InstantSet] = []
        for source in sources:
            if isinstance(source, Union):
                flattened.extend(source.sources)
            else:
                flattened.append(source)
        self.sources: tuple[InstantSet, ...] = tuple(flattened)

    @property
    @override
    def bounds(self) -> Interval | None:
        hulls = [source.bounds for source in self.sources]
        if any(hull is None for hull in hulls):
            return None
        occupied = [hull for hull in hulls if hull is not _NOWHERE]
        if not occupied:
            return _NOWHERE
        return Interval(
            start=min(hull.start for hull in occupied),
            end=max(hull.stop for hull in occupied),
        )

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        streams = [source.fetch(start, end) for source in self.sources]

        def generate() -> Iterable[datetime]:
            previous = None
            for dt in heapq.merge(*streams):
                if dt != previous:
                    yield dt
                previous = dt

        return generate()

    @override
    def contains(self, dt: datetime) -> bool:
        return any(source.contains(dt) for source in self.sources)


class Intersection(InstantSet):
    """Instants present in every source.

    Iteration is driven by the first bounded source; membership in the others
    is tested per instant.
    """

    def __init__(self, *sources: InstantSet):
        flattened: list[InstantSet] = []
        for source in sources:
            if isinstance(source, Intersection):
                flattened.extend(source.sources)
            else:
                flattened.append(source)
        self.sources: tuple[InstantSet, ...] = tuple(flattened)

    @property
    @override
    def bounds(self) -> Interval | None:
        hulls = [source.bounds for source in self.sources if source.bounds is not None]
        if not hulls:
            return None
        lo = max(hull.start for hull in hulls)
        hi = min(hull.stop for hull in hulls)
        if lo >= hi:
            return _NOWHERE
        return Interval(start=lo, end=hi)

    def _driver(self) -> int:
        for idx, source in enumerate(self.sources):
            if source.bounds is not None:
                return idx
        return 0

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        driver = self._driver()
        others = [s for idx, s in enumerate(self.sources) if idx != driver]
        return (
            dt
            for dt in self.sources[driver].fetch(start, end)
            if all(other.contains(dt) for other in others)
        )

    @override
    def contains(self, dt: datetime) -> bool:
        return all(source.contains(dt) for source in self.sources)


class Clipped(InstantSet):
    """Instants of ``source`` that fall inside any of ``spans``."""

    def __init__(self, source: InstantSet, spans: Spans):
        self.source: InstantSet = source
        self.spans: Spans = spans
        self.windows: tuple[tuple[datetime, datetime], ...] = _coalesce(spans)

    @property
    @override
    def bounds(self) -> Interval:
        hull = self.spans.bounds
        if hull is None:
            return _NOWHERE
        source = self.source.bounds
        if source is not None:
            hull = hull.intersection(source)
        return _NOWHERE if hull is None else hull

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        def generate() -> Iterable[datetime]:
            for window_start, window_stop in self.windows:
                lo = window_start if start is None else max(window_start, start)
                hi = window_stop if end is None else min(window_stop, end)
                if lo < hi:
                    yield from self.source.fetch(lo, hi)

        return generate()

    @override
    def contains(self, dt: datetime) -> bool:
        return (
            any(lo <= dt < hi for lo, hi in self.windows) and self.source.contains(dt)
        )


class Boundaries(InstantSet):
    """Every boundary of a calendar period: midnights for "day", Mondays for "week"."""

    def __init__(self, period: Period):
        check_period(period)
        self.period: str = period

    def __repr__(self) -> str:
        return f"Boundaries({self.period!r})"

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        if start is None:
            raise ValueError(
                f"Boundaries requires a finite start, got start=None.\n"
                f"Fix: intersect with a bounded interval first:\n"
                f"  Boundaries('day') & Interval(start=..., end=...)"
            )

        def generate() -> Iterable[datetime]:
            dt = truncate(start, self.period)
            if dt < start:
                dt = next_boundary(dt, self.period)
            while end is None or dt < end:
                yield dt
                dt = next_boundary(dt, self.period)

        return generate()

    @override
    def contains(self, dt: datetime) -> bool:
        return truncate(dt, self.period) == dt


def _coalesce(spans: Spans) -> tuple[tuple[datetime, datetime], ...]:
    """Merge overlapping and adjacent spans into disjoint ``[start, stop)`` windows."""
    merged: list[list[datetime]] = []
    for span in spans:
        if merged and span.start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], span.stop)
        else:
            merged.append([span.start, span.stop])
    return tuple((lo, hi) for lo, hi in merged)


def union(*sets: InstantSet) -> InstantSet:
    """Compose instant sets with union semantics (equivalent to chaining `|`)."""

    if not sets:
        raise ValueError(
            f"union() requires at least one InstantSet argument.\n"
            f"Example: union(rrules, rdates)"
        )

    def reducer(acc: InstantSet, nxt: InstantSet) -> InstantSet:
        return acc | nxt

    return reduce(reducer, sets)


def intersection(*sets: Any) -> InstantSet:
    """Compose instant sets with intersection semantics (equivalent to chaining `&`)."""

    if not sets:
        raise ValueError(
            f"intersection() requires at least one InstantSet argument.\n"
            f"Example: intersection(rrules, Interval(start=..., end=...))"
        )

    def reducer(acc: InstantSet, nxt: Any) -> InstantSet:
        return acc & nxt

    return reduce(reducer, sets)
