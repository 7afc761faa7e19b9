"""Recurrence rules and the iCalendar value codec.

This module turns rule text into instant sets anchored at an event's start,
backed by python-dateutil's rrule implementation, and converts single
instants, durations and periods to and from their iCalendar text form using
the icalendar property types.
"""

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timedelta

from dateutil.rrule import rrule, rrulebase, rruleset, rrulestr
from icalendar.prop import vDate, vDatetime, vDDDTypes, vDuration, vPeriod
from typing_extensions import override

from icalgebra.core import InstantSet, Union
from icalgebra.interval import Interval
from icalgebra.util import to_floating

logger = logging.getLogger(__name__)

# "RRULE:", "EXRULE:" and friends in front of serialized rule text
_PREFIX = re.compile(r"^[^:=;]+:")
# UNTIL in UTC can't be combined with a floating DTSTART
_UNTIL_UTC = re.compile(r"(UNTIL=\d{8}T\d{6})Z", re.IGNORECASE)


class RuleSet(InstantSet):
    """Instants generated by a dateutil rule anchored at a start instant.

    Rules without COUNT or UNTIL are infinite, so a RuleSet is always treated
    as unbounded: intersect it with a finite query before iterating.
    """

    def __init__(self, rule: rrulebase, text: str | None = None):
        self.rule: rrulebase = rule
        self.text: str | None = text

    def __repr__(self) -> str:
        return f"RuleSet({self.text or self.rule!r})"

    @override
    def fetch(self, start: datetime | None, end: datetime | None) -> Iterable[datetime]:
        def generate() -> Iterable[datetime]:
            occurrences = (
                iter(self.rule) if start is None else self.rule.xafter(start, inc=True)
            )
            for dt in occurrences:
                if end is not None and dt >= end:
                    return
                yield dt

        return generate()

    @override
    def contains(self, dt: datetime) -> bool:
        return dt in self.rule


def compile_recurrence(text: str, anchor: datetime) -> RuleSet:
    """Compile rule text into an instant set anchored at ``anchor``.

    Args:
        text: RFC 5545 recurrence rule, with or without an ``RRULE:`` prefix
        anchor: Floating start instant of the series

    Returns:
        RuleSet yielding the occurrences of the rule

    Raises:
        ValueError: If the rule text cannot be parsed
    """
    floating_text = _UNTIL_UTC.sub(r"\1", _strip_prefix(text))
    try:
        rule = rrulestr(floating_text, dtstart=to_floating(anchor))
    except (ValueError, TypeError) as e:
        raise ValueError(
            f"Invalid recurrence rule: {text!r}\n"
            f"Example: 'FREQ=WEEKLY;COUNT=2'"
        ) from e
    logger.debug("Compiled %r anchored at %s", text, anchor)
    return RuleSet(rule, text=_strip_prefix(text))


def format_recurrence(*rules: "str | rrule | RuleSet") -> list[str]:
    """Serialize rules to rule text, one entry per rule.

    ``RRULE:``-style prefixes and ``DTSTART`` lines are removed, so the text
    can be stored as the value of an RRULE or EXRULE property.

    Raises:
        TypeError: For values that don't carry a rule, such as explicit dates
    """
    texts: list[str] = []
    for item in rules:
        if isinstance(item, str):
            texts.append(_strip_prefix(item))
        elif isinstance(item, RuleSet):
            if item.text is not None:
                texts.append(item.text)
            else:
                texts.extend(format_recurrence(item.rule))
        elif isinstance(item, Union):
            texts.extend(format_recurrence(*item.sources))
        elif isinstance(item, rrule):
            for line in str(item).splitlines():
                if not line.upper().startswith("DTSTART"):
                    texts.append(_strip_prefix(line))
        elif isinstance(item, rruleset):
            raise TypeError(
                "Cannot serialize a dateutil rruleset as a single rule.\n"
                "Hint: pass its rrules individually and store dates via event.rdate"
            )
        else:
            raise TypeError(
                f"Cannot serialize {type(item).__name__!r} as a recurrence rule.\n"
                f"Expected rule text, dateutil rrule or RuleSet.\n"
                f"Hint: explicit instants belong in event.rdate / event.exdate"
            )
    return texts


def _strip_prefix(text: str) -> str:
    return _PREFIX.sub("", text.strip(), count=1)


def parse_instant(text: str) -> datetime:
    """Parse a DATE or DATE-TIME literal into a floating instant."""
    value = vDDDTypes.from_ical(text.strip())
    if isinstance(value, (timedelta, tuple)):
        raise ValueError(f"Expected a date or date-time, got {text!r}")
    return to_floating(value)


def format_instant(dt: datetime) -> str:
    """Format an instant as a DATE-TIME literal (second precision)."""
    if not isinstance(dt, datetime):
        return vDate(dt).to_ical().decode()
    return vDatetime(to_floating(dt)).to_ical().decode()


def parse_duration(text: str) -> timedelta:
    return vDuration.from_ical(text.strip())


def format_duration(duration: timedelta) -> str:
    return vDuration(duration).to_ical().decode()


def parse_period(text: str) -> Interval:
    """Parse ``start/end`` or ``start/duration`` into an Interval."""
    start, end_or_duration = vPeriod.from_ical(text.strip())
    start = to_floating(start)
    if isinstance(end_or_duration, timedelta):
        return Interval(start=start, end=start + end_or_duration)
    return Interval(start=start, end=to_floating(end_or_duration))


def format_period(span: Interval) -> str:
    if span.end is None:
        raise ValueError(f"A floating interval has no period form: {span}")
    return vPeriod((span.start, span.end)).to_ical().decode()


__all__ = [
    "RuleSet",
    "compile_recurrence",
    "format_recurrence",
    "parse_instant",
    "format_instant",
    "parse_duration",
    "format_duration",
    "parse_period",
    "format_period",
]
