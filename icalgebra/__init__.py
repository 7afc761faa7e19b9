from .calendar import events
from .core import (
    Boundaries,
    Dates,
    EmptySet,
    InstantSet,
    Intersection,
    Union,
    intersection,
    union,
)
from .errors import ConflictingFieldsError, MalformedEventError, MissingStartError
from .event import Event, Normalised
from .interval import Interval, Spans
from .recurrence import (
    RuleSet,
    compile_recurrence,
    format_duration,
    format_instant,
    format_period,
    format_recurrence,
    parse_duration,
    parse_instant,
    parse_period,
)
from .text import escape, unescape
from .util import DAY, HOUR, MINUTE, PERIODS, RESOLUTION, SECOND, WEEK

__all__ = [
    "Event",
    "Normalised",
    "events",
    "Interval",
    "Spans",
    "InstantSet",
    "Dates",
    "EmptySet",
    "Boundaries",
    "Union",
    "Intersection",
    "RuleSet",
    "union",
    "intersection",
    "compile_recurrence",
    "format_recurrence",
    "parse_instant",
    "format_instant",
    "parse_duration",
    "format_duration",
    "parse_period",
    "format_period",
    "escape",
    "unescape",
    "MalformedEventError",
    "ConflictingFieldsError",
    "MissingStartError",
    "RESOLUTION",
    "PERIODS",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "WEEK",
]
