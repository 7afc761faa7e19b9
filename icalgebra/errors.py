"""Errors raised when an event's temporal properties are inconsistent."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from icalgebra.event import Event


class MalformedEventError(ValueError):
    """An event whose temporal properties cannot be normalised.

    Attributes:
        fields: Names of the offending properties
        event: The malformed event
    """

    def __init__(self, message: str, fields: tuple[str, ...], event: "Event"):
        super().__init__(message)
        self.fields: tuple[str, ...] = fields
        self.event: "Event" = event


class ConflictingFieldsError(MalformedEventError):
    """Two mutually exclusive properties are both set."""

    def __init__(self, fields: tuple[str, ...], event: "Event"):
        names = " and ".join(f.upper() for f in fields)
        super().__init__(
            f"Event has both {names} set (uid={event.uid!r}).\n"
            f"These properties are mutually exclusive.\n"
            f"Hint: clear one of them, e.g. `del event.{fields[-1]}`",
            fields,
            event,
        )


class MissingStartError(MalformedEventError):
    """The event has neither a DTSTART nor a PERIOD."""

    def __init__(self, event: "Event"):
        super().__init__(
            f"Event has no start (uid={event.uid!r}).\n"
            f"Every temporal operation needs a DTSTART or a PERIOD.\n"
            f"Hint: event.start = datetime(2005, 7, 1)",
            ("start",),
            event,
        )


__all__ = ["MalformedEventError", "ConflictingFieldsError", "MissingStartError"]
