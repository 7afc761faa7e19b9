"""Tests for Event property accessors and their iCalendar encoding."""

from datetime import date, datetime, timedelta

import pytest

from icalgebra import Event, Interval, MissingStartError, RESOLUTION

JULY = Interval(start=datetime(2005, 7, 1), end=datetime(2005, 8, 1))
LAST_TICK_OF_JULY_1 = datetime(2005, 7, 1, 23, 59, 59, 999999)

VEVENT = b"""BEGIN:VEVENT
UID:tea@example.com
DTSTART:20050620T160000
DTEND:20050620T163000
SUMMARY:Tea\\, biscuits\\; chat
RRULE:FREQ=WEEKLY;COUNT=4
EXDATE:20050627T160000,20050704T160000
END:VEVENT
"""


def d(day: int, hour: int = 0) -> datetime:
    return datetime(2005, 7, day, hour)


def test_unknown_field_is_rejected():
    with pytest.raises(TypeError, match="Unknown event field"):
        Event(begin=d(1))


def test_setting_a_field_replaces_it():
    """Setters never leave two values of a single-valued property."""
    event = Event(start=d(1))
    event.start = d(2)

    assert event.start == d(2)
    assert not isinstance(event.component.get("dtstart"), list)


def test_deleting_fields():
    event = Event(start=d(1), end=d(2), uid="x")
    del event.end
    del event.uid

    assert event.end is None
    assert event.uid is None
    assert event.floating


def test_date_start_reads_as_midnight():
    event = Event(start=date(2005, 7, 1))

    assert event.start == d(1)


def test_parsed_fields():
    event = Event.from_ical(VEVENT)

    assert event.uid == "tea@example.com"
    assert event.start == datetime(2005, 6, 20, 16)
    assert event.end == datetime(2005, 6, 20, 16, 30)
    assert event.summary == "Tea, biscuits; chat"
    assert list(event.exdate) == [
        datetime(2005, 6, 27, 16),
        datetime(2005, 7, 4, 16),
    ]
    assert list(event.recurrence & JULY) == [
        datetime(2005, 7, 4, 16),
        datetime(2005, 7, 11, 16),
    ]


def test_summary_is_escaped_on_the_wire():
    event = Event(summary="Lunch, then; talk")

    assert event.summary == "Lunch, then; talk"
    assert b"SUMMARY:Lunch\\, then\\; talk" in event.to_ical()


def test_description_round_trips_newlines():
    event = Event(description="first line\nsecond line")

    assert event.description == "first line\nsecond line"
    assert b"first line\\nsecond line" in event.to_ical()


def test_duration_and_period():
    event = Event(duration=timedelta(hours=2))
    span = Interval(start=d(1, 9), end=d(1, 17))
    event.period = span

    assert event.duration == timedelta(hours=2)
    assert event.period == span


def test_period_needs_an_end():
    with pytest.raises(ValueError, match="needs an end"):
        Event(period=Interval(start=d(1)))


def test_recurrence_id():
    event = Event(recurrence_id=datetime(2005, 7, 4, 9))

    assert event.recurrence_id == datetime(2005, 7, 4, 9)


def test_recurrence_rules():
    event = Event(start=datetime(2005, 6, 20))
    event.recurrence = ["FREQ=DAILY;COUNT=2", "FREQ=WEEKLY;COUNT=2"]

    assert len(event.component["rrule"]) == 2
    assert list(event.recurrence & Interval(start=datetime(2005, 6, 1), end=d(1))) == [
        datetime(2005, 6, 20),
        datetime(2005, 6, 21),
        datetime(2005, 6, 27),
    ]


def test_single_recurrence_rule_is_stored_without_prefix():
    event = Event(start=datetime(2005, 6, 20), recurrence="RRULE:FREQ=WEEKLY;COUNT=2")

    wire = event.component["rrule"].to_ical()
    assert b"FREQ=WEEKLY" in wire
    assert b"COUNT=2" in wire
    assert b"RRULE:" not in wire


def test_rules_need_a_start():
    event = Event(recurrence="FREQ=WEEKLY")

    assert event.recurrence is None


def test_rdate_and_exdate():
    event = Event(rdate=[d(3), d(1)], exdate=[d(2)])

    assert list(event.rdate) == [d(1), d(3)]
    assert list(event.exdate) == [d(2)]

    event.rdate = None
    assert event.rdate is None


def test_all_day_synthesizes_an_end():
    """A start-only event becomes a one-day all-day event."""
    event = Event(start=d(1, 9))
    event.all_day = True

    assert event.all_day
    assert event.end == LAST_TICK_OF_JULY_1
    assert event.component["dtend"].dt == date(2005, 7, 2)


def test_all_day_is_idempotent():
    event = Event(start=d(1, 9), end=d(3, 12))
    event.all_day = True
    stored = event.component["dtend"].to_ical()
    end = event.end

    event.all_day = True

    assert event.component["dtend"].to_ical() == stored
    assert event.end == end


def test_all_day_toggle_preserves_logical_end():
    event = Event(start=d(1), end=d(3, 12))
    event.all_day = True
    end = event.end

    event.all_day = False
    assert not event.all_day
    assert event.end == end

    event.all_day = True
    assert event.all_day
    assert event.end == end
    assert end == datetime(2005, 7, 4) - RESOLUTION


def test_end_of_all_day_event_is_stored_as_next_date():
    event = Event(start=d(1), all_day=True)
    event.end = d(5, 10)

    assert event.component["dtend"].dt == date(2005, 7, 6)
    assert event.end == datetime(2005, 7, 5, 23, 59, 59, 999999)


def test_floating_toggle_loses_the_end():
    event = Event(start=d(1, 9), end=d(1, 17))
    event.floating = True

    assert event.floating
    assert event.end is None

    event.floating = False
    assert not event.floating
    assert event.end == LAST_TICK_OF_JULY_1


def test_floating_false_needs_a_start():
    with pytest.raises(MissingStartError):
        Event().floating = False


def test_copy_is_independent():
    event = Event(uid="x", start=d(1), end=d(2), exdate=[d(1)])
    clone = event.copy()
    clone.start = d(5)
    clone.exdate = [d(6)]

    assert event.start == d(1)
    assert list(event.exdate) == [d(1)]
    assert clone.original is None
    assert event.copy(original=event).original is event
