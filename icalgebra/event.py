"""Temporal semantics for iCalendar VEVENT components.

``Event`` wraps an ``icalendar.Event`` and exposes its temporal properties
as floating datetimes, durations, intervals and instant sets. Every setter
deletes the previous encoding of its property before storing the new one.
"""

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import icalendar
from dateutil.rrule import rrule
from icalendar.prop import vDDDLists, vInline, vPeriod

from icalgebra.core import Boundaries, Dates, InstantSet, Union, union
from icalgebra.errors import ConflictingFieldsError, MissingStartError
from icalgebra.interval import Interval, Spans
from icalgebra.recurrence import (
    RuleSet,
    compile_recurrence,
    format_recurrence,
    parse_instant,
    parse_period,
)
from icalgebra.text import escape, unescape
from icalgebra.util import (
    RESOLUTION,
    Period,
    end_of,
    next_boundary,
    to_floating,
    truncate,
)

logger = logging.getLogger(__name__)

Query = Interval | Spans | InstantSet
Rule = str | rrule | RuleSet

# Properties removed from every expanded instance
_STRIPPED = ("rrule", "exrule", "rdate", "exdate", "duration", "period")

_FIELDS = (
    "start",
    "end",
    "duration",
    "period",
    "recurrence",
    "exrule",
    "rdate",
    "exdate",
    "recurrence_id",
    "uid",
    "summary",
    "description",
    "all_day",
    "floating",
)


@dataclass(frozen=True)
class Normalised:
    """Canonical temporal state of an event.

    ``end`` is None for floating events, whose ``span`` is a zero-width
    interval at ``start`` and whose ``duration`` is zero.
    """

    start: datetime
    end: datetime | None
    duration: timedelta
    span: Interval
    recur: InstantSet | None
    exrule: InstantSet | None
    rdate: InstantSet | None
    exdate: InstantSet | None
    uid: str | None
    recurrence_id: datetime | None


class Event:
    """A VEVENT component with typed access to its temporal properties.

    Attributes:
        component: The underlying ``icalendar.Event``
        original: The event this one was expanded or split from, if any.
            Never serialized and never copied.

    Example:
        >>> from datetime import datetime, timedelta
        >>> from icalgebra import Event, Interval
        >>>
        >>> standup = Event(
        ...     uid="standup",
        ...     start=datetime(2005, 6, 20, 9, 30),
        ...     duration=timedelta(minutes=15),
        ...     recurrence="FREQ=WEEKLY;COUNT=2",
        ... )
        >>> june = Interval(start=datetime(2005, 6, 1), end=datetime(2005, 7, 1))
        >>> [e.start for e in standup.explode(june)]
        [datetime.datetime(2005, 6, 20, 9, 30), datetime.datetime(2005, 6, 27, 9, 30)]
    """

    def __init__(
        self,
        component: icalendar.Event | None = None,
        *,
        original: "Event | None" = None,
        **fields: Any,
    ):
        """
        Wrap an existing component, or create an empty one.

        Args:
            component: Parsed VEVENT to wrap (a new empty one if omitted)
            original: Back-reference to the event this one derives from
            **fields: Temporal fields to assign, in order (e.g. start=..., end=...)
        """
        self.component: icalendar.Event = (
            component if component is not None else icalendar.Event()
        )
        self.original: Event | None = original
        for name, value in fields.items():
            if name not in _FIELDS:
                valid = ", ".join(_FIELDS)
                raise TypeError(
                    f"Unknown event field: {name!r}\n" f"Valid fields: {valid}"
                )
            setattr(self, name, value)

    @classmethod
    def from_ical(cls, text: str | bytes) -> "Event":
        """Parse a single ``BEGIN:VEVENT`` ... ``END:VEVENT`` block."""
        return cls(icalendar.Event.from_ical(text))

    def to_ical(self) -> bytes:
        return self.component.to_ical()

    def __repr__(self) -> str:
        return f"Event(uid={self.uid!r}, start={self.start}, end={self.end})"

    def copy(self, original: "Event | None" = None) -> "Event":
        """Return an independent deep copy of this event.

        Every property value and subcomponent is duplicated, so mutating the
        copy never affects this event. ``original`` is not copied: the copy
        points at the given event instead.
        """
        component = icalendar.Event()
        for name, value in self.component.items():
            component[name] = copy.deepcopy(value)
        for subcomponent in self.component.subcomponents:
            component.add_component(copy.deepcopy(subcomponent))
        return Event(component, original=original)

    # Property layer

    def _values(self, name: str) -> list[Any]:
        value = self.component.get(name)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]

    def _first(self, name: str) -> Any:
        values = self._values(name)
        return values[0] if values else None

    def _delete(self, name: str) -> None:
        self.component.pop(name, None)

    def _replace(self, name: str, value: Any) -> None:
        self._delete(name)
        if value is not None:
            self.component.add(name, value)

    # Single-valued fields

    @property
    def start(self) -> datetime | None:
        value = self._first("dtstart")
        return None if value is None else to_floating(value.dt)

    @start.setter
    def start(self, value: datetime | None) -> None:
        self._replace("dtstart", value)

    @start.deleter
    def start(self) -> None:
        self._delete("dtstart")

    @property
    def end(self) -> datetime | None:
        """The logical end of the event.

        All-day events store the day after their last day as a DATE; that
        value decodes to one tick before its midnight.
        """
        value = self._first("dtend")
        if value is None:
            return None
        end = to_floating(value.dt)
        if _is_date(value):
            return truncate(end, "day") - RESOLUTION
        return end

    @end.setter
    def end(self, value: datetime | None) -> None:
        self._store_end(value, self.all_day)

    @end.deleter
    def end(self) -> None:
        self._delete("dtend")

    def _store_end(self, value: datetime | None, all_day: bool) -> None:
        self._delete("dtend")
        if value is None:
            return
        if all_day:
            self.component.add("dtend", next_boundary(to_floating(value), "day").date())
        else:
            self.component.add("dtend", value)

    @property
    def all_day(self) -> bool:
        """True if the end is stored as a DATE (``DTEND;VALUE=DATE``)."""
        value = self._first("dtend")
        return value is not None and _is_date(value)

    @all_day.setter
    def all_day(self, new: bool) -> None:
        if self._first("dtend") is None:
            if not new:
                return
            self.end = end_of(self._require_start(), "day")
        if bool(new) == self.all_day:
            return
        self._store_end(self.end, bool(new))

    @property
    def floating(self) -> bool:
        """True if the event has a start but no end."""
        return self._first("dtend") is None

    @floating.setter
    def floating(self, new: bool) -> None:
        if bool(new) == self.floating:
            return
        if new:
            self._delete("dtend")
        else:
            self.end = end_of(self._require_start(), "day")

    def _require_start(self) -> datetime:
        start = self.start
        if start is None:
            raise MissingStartError(self)
        return start

    @property
    def duration(self) -> timedelta | None:
        value = self._first("duration")
        return None if value is None else value.td

    @duration.setter
    def duration(self, value: timedelta | None) -> None:
        self._replace("duration", value)

    @duration.deleter
    def duration(self) -> None:
        self._delete("duration")

    @property
    def period(self) -> Interval | None:
        value = self._first("period")
        if value is None:
            return None
        if isinstance(value, vPeriod):
            return Interval(
                start=to_floating(value.start), end=to_floating(value.end)
            )
        return parse_period(str(value))

    @period.setter
    def period(self, value: Interval | None) -> None:
        if value is not None and value.end is None:
            raise ValueError(f"A period needs an end, got floating {value}")
        self._replace(
            "period", None if value is None else vPeriod((value.start, value.end))
        )

    @period.deleter
    def period(self) -> None:
        self._delete("period")

    @property
    def recurrence_id(self) -> datetime | None:
        value = self._first("recurrence-id")
        return None if value is None else to_floating(value.dt)

    @recurrence_id.setter
    def recurrence_id(self, value: datetime | None) -> None:
        self._replace("recurrence-id", value)

    @recurrence_id.deleter
    def recurrence_id(self) -> None:
        self._delete("recurrence-id")

    @property
    def uid(self) -> str | None:
        value = self._first("uid")
        return None if value is None else str(value)

    @uid.setter
    def uid(self, value: str | None) -> None:
        self._replace("uid", value)

    @uid.deleter
    def uid(self) -> None:
        self._delete("uid")

    @property
    def summary(self) -> str | None:
        return self._get_text("summary")

    @summary.setter
    def summary(self, value: str | None) -> None:
        self._set_text("summary", value)

    @property
    def description(self) -> str | None:
        return self._get_text("description")

    @description.setter
    def description(self, value: str | None) -> None:
        self._set_text("description", value)

    def _get_text(self, name: str) -> str | None:
        value = self._first(name)
        if value is None:
            return None
        if isinstance(value, vInline):
            # stored by _set_text as raw wire text
            return unescape(str(value))
        return str(value)

    def _set_text(self, name: str, value: str | None) -> None:
        self._replace(name, None if value is None else vInline(escape(value)))

    # Rule and date sets

    @property
    def recurrence(self) -> InstantSet | None:
        """Union of every RRULE, anchored at the start. None without start or rules."""
        return self._rule_set("rrule", self.start)

    @recurrence.setter
    def recurrence(self, rules: "Rule | Iterable[Rule] | None") -> None:
        self._set_rules("rrule", rules)

    @recurrence.deleter
    def recurrence(self) -> None:
        self._delete("rrule")

    @property
    def exrule(self) -> InstantSet | None:
        """Union of every EXRULE, anchored at the start. None without start or rules."""
        return self._rule_set("exrule", self.start)

    @exrule.setter
    def exrule(self, rules: "Rule | Iterable[Rule] | None") -> None:
        self._set_rules("exrule", rules)

    @exrule.deleter
    def exrule(self) -> None:
        self._delete("exrule")

    @property
    def rdate(self) -> InstantSet | None:
        return self._date_set("rdate")

    @rdate.setter
    def rdate(self, instants: Iterable[datetime] | None) -> None:
        self._set_dates("rdate", instants)

    @rdate.deleter
    def rdate(self) -> None:
        self._delete("rdate")

    @property
    def exdate(self) -> InstantSet | None:
        return self._date_set("exdate")

    @exdate.setter
    def exdate(self, instants: Iterable[datetime] | None) -> None:
        self._set_dates("exdate", instants)

    @exdate.deleter
    def exdate(self) -> None:
        self._delete("exdate")

    def _rule_set(self, name: str, anchor: datetime | None) -> InstantSet | None:
        if anchor is None:
            return None
        texts = [_rule_text(value) for value in self._values(name)]
        if not texts:
            return None
        return union(*(compile_recurrence(text, anchor) for text in texts))

    def _set_rules(self, name: str, rules: "Rule | Iterable[Rule] | None") -> None:
        self._delete(name)
        if rules is None:
            return
        if isinstance(rules, (str, rrule, RuleSet, Union)):
            rules = [rules]
        for text in format_recurrence(*rules):
            self.component.add(name, text)

    def _date_set(self, name: str) -> InstantSet | None:
        values = self._values(name)
        if not values:
            return None
        instants: list[datetime] = []
        for value in values:
            instants.extend(_instants(value))
        return Dates(instants)

    def _set_dates(self, name: str, instants: Iterable[datetime] | None) -> None:
        self._delete(name)
        if instants is None:
            return
        dates = list(instants)
        if dates:
            self.component.add(name, dates)

    # Temporal operations

    def normalise(self) -> Normalised:
        """Reconcile the temporal properties into one canonical record.

        Returns:
            The normalised start, end, duration, span and rule/date sets

        Raises:
            ConflictingFieldsError: PERIOD with DTSTART/DTEND, or DTEND with DURATION
            MissingStartError: Neither DTSTART nor PERIOD is set
        """
        period = self.period
        start = self.start
        end = self.end
        duration = self.duration

        if period is not None:
            if start is not None or end is not None:
                fields = ("period", "start") if start is not None else ("period", "end")
                raise ConflictingFieldsError(fields, self)
            start, end = period.start, period.end

        if start is None:
            raise MissingStartError(self)

        if end is not None and duration is not None:
            raise ConflictingFieldsError(("end", "duration"), self)

        if duration is not None:
            end = start + duration

        recur = self._rule_set("rrule", start)
        rdate = self.rdate
        if rdate is not None:
            recur = rdate if recur is None else recur | rdate

        span = Interval(start=start, end=end)
        normalised = Normalised(
            start=start,
            end=end,
            duration=span.duration,
            span=span,
            recur=recur,
            exrule=self._rule_set("exrule", start),
            rdate=rdate,
            exdate=self.exdate,
            uid=self.uid,
            recurrence_id=self.recurrence_id,
        )
        logger.debug("Normalised %r to %s", self, span)
        return normalised

    def explode(self, query: Query, period: Period | None = None) -> list["Event"]:
        """Expand this event into the concrete instances that overlap ``query``.

        A non-recurring event yields at most one instance. A recurring event
        yields one instance per occurrence in the query, skipping EXRULE and
        EXDATE matches. Instances carry only DTSTART and DTEND (the rule,
        date-list, DURATION and PERIOD properties are removed), keep the
        all-day flag and point back at this event through ``original``.

        Every occurrence lasts the normalised duration of this event; nothing
        is clipped to the query.

        Args:
            query: Interval, Spans or InstantSet to expand against
            period: If given, split each instance with :meth:`split_up`

        Returns:
            Instances ordered by start
        """
        e = self.normalise()
        events: list[Event] = []

        if e.recur is None:
            if e.span.intersects(query):
                events.append(self._instance(e.start, e.end))
        else:
            for dt in e.recur & query:
                if e.exrule is not None and dt in e.exrule:
                    continue
                if e.exdate is not None and dt in e.exdate:
                    continue
                end = None if e.end is None else dt + e.duration
                events.append(self._instance(dt, end))

        logger.debug("Exploded %r into %d instance(s)", self, len(events))
        if period is None:
            return events
        return [piece for event in events for piece in event.split_up(period)]

    def _instance(self, start: datetime, end: datetime | None) -> "Event":
        all_day = self.all_day
        event = self.copy(original=self)
        for name in _STRIPPED:
            event._delete(name)
        if all_day and start == truncate(start, "day"):
            # DTSTART and DTEND;VALUE=DATE must share a value type
            event.start = start.date()
        else:
            event.start = start
        event._store_end(end, all_day)
        return event

    def split_up(self, period: Period) -> list["Event"]:
        """Split this instance into consecutive one-period pieces.

        Pieces start at this event's start and at every period boundary before
        its end. Each piece ends one tick before the next boundary, except the
        last, which ends exactly where this event ends. Pieces are never
        all-day.

        Args:
            period: "year", "month", "week", "day", "hour", "minute" or "second"

        Raises:
            ValueError: For an unknown period or a floating event
        """
        start = self._require_start()
        end = self.end
        if end is None:
            raise ValueError(
                f"Cannot split the floating event {self!r}: it has no end.\n"
                f"Hint: event.floating = False gives it an end"
            )

        cuts = Dates([start]) | (Boundaries(period) & Interval(start=start, end=end))
        pieces: list[Event] = []
        for dt in cuts:
            piece = self.copy(original=self)
            piece.start = dt
            piece.all_day = False
            piece.end = end_of(dt, period)
            pieces.append(piece)

        pieces[-1].end = end
        return pieces

    def is_in(self, query: Query) -> bool:
        """Return True if this event or any of its occurrences overlaps ``query``."""
        e = self.normalise()
        if e.recur is None:
            return e.span.intersects(query)
        return e.recur.intersects(query)


def _is_date(value: Any) -> bool:
    params = getattr(value, "params", None) or {}
    if str(params.get("VALUE", "")).upper() == "DATE":
        return True
    dt = getattr(value, "dt", None)
    return isinstance(dt, date) and not isinstance(dt, datetime)


def _rule_text(value: Any) -> str:
    if hasattr(value, "to_ical"):
        text = value.to_ical()
        return text.decode() if isinstance(text, bytes) else text
    return str(value)


def _instants(value: Any) -> list[datetime]:
    """Instants of one RDATE/EXDATE entry."""
    if isinstance(value, vDDDLists):
        dts = [item.dt for item in value.dts]
    elif hasattr(value, "dt"):
        dts = [value.dt]
    else:
        return [parse_instant(bit) for bit in str(value).split(",") if bit.strip()]
    # RDATE;VALUE=PERIOD entries count from their start
    return [to_floating(dt[0] if isinstance(dt, tuple) else dt) for dt in dts]
