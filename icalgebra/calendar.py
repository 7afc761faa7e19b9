"""Calendar-level expansion with RECURRENCE-ID overrides.

This module provides ``events()``, which expands every VEVENT of a calendar
against a query and swaps computed occurrences of a recurring event for the
override records that share its UID.

Example:
    >>> import icalendar
    >>> from datetime import datetime
    >>> from icalgebra import Interval, events
    >>>
    >>> cal = icalendar.Calendar.from_ical(open("example.ics", "rb").read())
    >>> week = Interval(start=datetime(2005, 7, 1), end=datetime(2005, 7, 8))
    >>>
    >>> everything = events(cal)             # every VEVENT, as stored
    >>> this_week = events(cal, week)        # expanded and normalised
    >>> by_day = events(cal, week, "day")    # long events split into days
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime

from icalendar.cal import Component

from icalgebra.event import Event, Query
from icalgebra.util import Period

logger = logging.getLogger(__name__)


def _entries(calendar: Component | Iterable[Component]) -> list[Event]:
    """Wrap the VEVENT entries of ``calendar`` in document order."""
    if isinstance(calendar, Component):
        components = calendar.subcomponents
    else:
        components = list(calendar)
    return [Event(c) for c in components if c.name == "VEVENT"]


def _group_key(event: Event) -> str:
    uid = event.uid
    if uid is None:
        # Placeholder only: an entry without UID can never be overridden
        uid = uuid.uuid4().hex
        logger.debug("Entry %r has no UID, grouping it as %s", event, uid)
    return uid


def events(
    calendar: Component | Iterable[Component],
    query: Query | None = None,
    period: Period | None = None,
) -> list[Event]:
    """Return the events of a calendar, expanded against ``query``.

    Without a query every VEVENT is returned as stored (not normalised). With
    a query, each event is exploded; entries carrying a RECURRENCE-ID are
    overrides and replace, in place, the occurrence of their master (same
    UID) that starts at their RECURRENCE-ID. An override moved into the query
    from an occurrence outside it is added; one moved out of the query hides
    its occurrence. Overrides are applied after all masters, whatever their
    position in the document.

    Args:
        calendar: An ``icalendar.Calendar`` or any iterable of components.
            Only VEVENT components take part.
        query: Interval, Spans or InstantSet to expand against
        period: If given, split every resulting event into one-period pieces

    Returns:
        Events grouped by UID in first-seen order, each group ordered by start

    Raises:
        MalformedEventError: If an entry's temporal properties are inconsistent
    """
    entries = _entries(calendar)
    if query is None:
        return entries

    groups: dict[str, list[Event]] = {}
    masters: dict[str, Event] = {}
    overrides: list[Event] = []
    for entry in entries:
        if entry.recurrence_id is not None:
            overrides.append(entry)
            continue
        uid = _group_key(entry)
        masters.setdefault(uid, entry)
        groups.setdefault(uid, []).extend(entry.explode(query))

    for override in overrides:
        _apply_override(groups, masters, override, query)

    result: list[Event] = []
    for group in groups.values():
        if period is None:
            result.extend(group)
        else:
            for event in group:
                result.extend(event.split_up(period))
    return result


def _apply_override(
    groups: dict[str, list[Event]],
    masters: dict[str, Event],
    override: Event,
    query: Query,
) -> None:
    uid = _group_key(override)
    if uid not in masters:
        logger.debug("Override %r has no master event, dropping it", override)
        return

    occurrences = groups[uid]
    rid = override.recurrence_id
    instances = override.explode(query)

    if not instances:
        # Moved out of the query: its master occurrence must not show up either
        groups[uid] = [e for e in occurrences if e.start != rid]
        return

    for instance in instances:
        if _replace_occurrence(occurrences, rid, instance):
            continue
        if _occurs_at(masters[uid], rid):
            # Moved into the query from an occurrence outside it
            logger.debug("Adding override %r moved into the query", instance)
            _insert_by_start(occurrences, instance)
        else:
            logger.debug("Override %r matches no occurrence of %s", instance, uid)


def _occurs_at(master: Event, rid: datetime | None) -> bool:
    """True if ``master`` has an occurrence starting at ``rid``."""
    if rid is None:
        return False
    e = master.normalise()
    if e.recur is None:
        return e.start == rid
    if e.exrule is not None and rid in e.exrule:
        return False
    if e.exdate is not None and rid in e.exdate:
        return False
    return rid in e.recur


def _insert_by_start(occurrences: list[Event], instance: Event) -> None:
    idx = len(occurrences)
    for i, occurrence in enumerate(occurrences):
        if occurrence.start > instance.start:
            idx = i
            break
    occurrences.insert(idx, instance)


def _replace_occurrence(
    occurrences: list[Event], rid: datetime | None, instance: Event
) -> bool:
    replaced = False
    for idx, occurrence in enumerate(occurrences):
        if occurrence.start == rid:
            logger.debug("Replacing occurrence %s of %s", rid, occurrence.uid)
            occurrences[idx] = instance
            replaced = True
    return replaced


__all__ = ["events"]
