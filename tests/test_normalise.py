"""Tests for reconciling an event's temporal properties."""

from datetime import datetime, timedelta

import pytest

from icalgebra import (
    ConflictingFieldsError,
    Dates,
    Event,
    Interval,
    MalformedEventError,
    MissingStartError,
)

JUNE = Interval(start=datetime(2005, 6, 1), end=datetime(2005, 7, 1))


def test_start_and_end():
    event = Event(
        uid="x", start=datetime(2005, 6, 20, 9), end=datetime(2005, 6, 20, 10)
    )
    e = event.normalise()

    assert e.start == datetime(2005, 6, 20, 9)
    assert e.end == datetime(2005, 6, 20, 10)
    assert e.duration == timedelta(hours=1)
    assert e.span == Interval(start=e.start, end=e.end)
    assert e.uid == "x"
    assert e.recur is None


def test_duration_derives_the_end():
    event = Event(start=datetime(2005, 6, 20, 9), duration=timedelta(minutes=45))
    e = event.normalise()

    assert e.end == datetime(2005, 6, 20, 9, 45)
    assert e.duration == timedelta(minutes=45)


def test_period_supplies_start_and_end():
    span = Interval(start=datetime(2005, 6, 20, 9), end=datetime(2005, 6, 20, 11))
    e = Event(period=span).normalise()

    assert e.start == span.start
    assert e.end == span.end
    assert e.span == span


def test_floating_event():
    """No end and no duration: zero duration, zero-width span."""
    e = Event(start=datetime(2005, 6, 20, 9)).normalise()

    assert e.end is None
    assert e.duration == timedelta(0)
    assert e.span.is_floating


def test_period_conflicts_with_start():
    span = Interval(start=datetime(2005, 6, 20, 9), end=datetime(2005, 6, 20, 11))
    event = Event(start=datetime(2005, 6, 20, 9), period=span)

    with pytest.raises(ConflictingFieldsError) as exc_info:
        event.normalise()

    assert exc_info.value.fields == ("period", "start")
    assert exc_info.value.event is event


def test_period_conflicts_with_end():
    span = Interval(start=datetime(2005, 6, 20, 9), end=datetime(2005, 6, 20, 11))
    event = Event(end=datetime(2005, 6, 20, 10), period=span)

    with pytest.raises(ConflictingFieldsError) as exc_info:
        event.normalise()

    assert exc_info.value.fields == ("period", "end")


def test_end_conflicts_with_duration():
    event = Event(
        uid="clash",
        start=datetime(2005, 6, 20, 9),
        end=datetime(2005, 6, 20, 10),
        duration=timedelta(hours=1),
    )

    with pytest.raises(ConflictingFieldsError, match="DTEND|END") as exc_info:
        event.normalise()

    assert exc_info.value.fields == ("end", "duration")
    assert "clash" in str(exc_info.value)


def test_missing_start():
    event = Event(uid="nowhere", end=datetime(2005, 6, 20, 10))

    with pytest.raises(MissingStartError) as exc_info:
        event.normalise()

    # Malformed events are ValueErrors for callers that don't care which
    assert isinstance(exc_info.value, MalformedEventError)
    assert isinstance(exc_info.value, ValueError)


def test_rules_are_anchored_at_the_period_start():
    span = Interval(start=datetime(2005, 6, 20, 9), end=datetime(2005, 6, 20, 10))
    e = Event(period=span, recurrence="FREQ=WEEKLY;COUNT=2").normalise()

    assert list(e.recur & JUNE) == [datetime(2005, 6, 20, 9), datetime(2005, 6, 27, 9)]


def test_rdate_joins_the_recurrence():
    event = Event(
        start=datetime(2005, 6, 20),
        recurrence="FREQ=WEEKLY;COUNT=2",
        rdate=[datetime(2005, 6, 22)],
    )
    e = event.normalise()

    assert list(e.recur & JUNE) == [
        datetime(2005, 6, 20),
        datetime(2005, 6, 22),
        datetime(2005, 6, 27),
    ]
    assert list(e.rdate) == [datetime(2005, 6, 22)]


def test_rdate_alone_is_a_recurrence():
    event = Event(start=datetime(2005, 6, 20), rdate=[datetime(2005, 6, 22)])
    e = event.normalise()

    assert isinstance(e.recur, Dates)
    assert list(e.recur) == [datetime(2005, 6, 22)]


def test_exclusions_are_carried():
    event = Event(
        start=datetime(2005, 6, 20),
        recurrence="FREQ=DAILY;COUNT=5",
        exrule="FREQ=DAILY;INTERVAL=2",
        exdate=[datetime(2005, 6, 21)],
    )
    e = event.normalise()

    assert datetime(2005, 6, 22) in e.exrule
    assert datetime(2005, 6, 21) not in e.exrule
    assert list(e.exdate) == [datetime(2005, 6, 21)]


def test_normalise_does_not_modify_the_event():
    event = Event(start=datetime(2005, 6, 20, 9), duration=timedelta(hours=1))
    before = event.to_ical()

    event.normalise()

    assert event.to_ical() == before
    assert event.end is None
